import pytest

from modules.core.accounts import authenticate_account, get_account, list_selling_points

pytestmark = pytest.mark.unit


class TestAccounts:
    def test_authenticate_with_right_password(self):
        account = authenticate_account("farmacia1", "centro-pass")
        assert account is not None
        assert account.selling_point == "farmacia1"
        assert account.display_name == "Farmacia Centro"

    @pytest.mark.parametrize(
        ("username", "password"),
        [("farmacia1", "wrong"), ("farmacia1", ""), ("nobody", "centro-pass"), ("", "")],
    )
    def test_rejects_bad_credentials(self, username, password):
        assert authenticate_account(username, password) is None

    def test_selling_point_can_differ_from_username(self, settings):
        settings.TENANT_ACCOUNTS = {
            "mostrador": {"password": "x", "selling_point": "farmacia1"}
        }
        account = get_account("mostrador")
        assert account.selling_point == "farmacia1"
        assert account.display_name == "mostrador"

    def test_list_selling_points(self):
        assert list_selling_points() == {
            "farmacia1": "Farmacia Centro",
            "farmacia2": "Farmacia Norte",
        }
