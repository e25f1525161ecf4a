from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from modules.catalog.repositories.django_repository import (
    AlmacenDjangoRepository,
    LaboratorioDjangoRepository,
)
from modules.core.accounts import list_selling_points
from modules.encargos.dtos import CreateEncargoDTO
from modules.encargos.repositories.django_repository import EncargoDjangoRepository
from modules.encargos.views import build_encargo_service
from modules.personas.dtos import CreatePersonaDTO
from modules.personas.exceptions import PhoneAlreadyInUse
from modules.personas.views import build_persona_service

PERSONAS = [
    ("Ana García", "600111222", "ana@example.com"),
    ("Bruno Martín", "611222333", ""),
    ("Carmen López", "622333444", "carmen@example.com"),
    ("David Sánchez", "633444555", ""),
    ("Elena Ruiz", "644555666", "elena@example.com"),
    ("Francisco Díaz", "655666777", ""),
    ("Lucía Romero", "666777888", "lucia@example.com"),
    ("Manuel Torres", "677888999", ""),
]

PRODUCTOS = [
    ("Ibuprofeno 600mg 40 comp.", "Cinfa"),
    ("Paracetamol 1g 40 comp.", "Kern Pharma"),
    ("Omeprazol 20mg 28 caps.", "Normon"),
    ("Crema hidratante facial 50ml", "La Roche-Posay"),
    ("Protector solar SPF50 200ml", "ISDIN"),
    ("Leche de continuación 800g", "Nutribén"),
    ("Colirio lubricante 10ml", "Alcon"),
    ("Medias de compresión talla M", "Farmalastic"),
]

ALMACENES = ["Cofares", "Hefame", "Bidafarma"]


class Command(BaseCommand):
    help = "Seed one or every selling point with realistic demo data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--selling-point",
            dest="selling_point",
            help="Seed only this selling point (default: every configured account).",
        )
        parser.add_argument("--encargos", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        selling_points = (
            [options["selling_point"]]
            if options["selling_point"]
            else sorted(list_selling_points())
        )
        if not selling_points:
            raise CommandError("No selling points configured; pass --selling-point.")

        for selling_point in selling_points:
            self.stdout.write(f"Seeding {selling_point}...")
            personas = self._seed_personas(selling_point)
            self._seed_catalog(selling_point)
            encargos_created = self._seed_encargos(selling_point, options["encargos"])
            self.stdout.write(
                self.style.SUCCESS(
                    f"Seed completed for {selling_point}: "
                    f"personas={personas}, encargos={encargos_created}"
                )
            )

    def _seed_personas(self, selling_point: str) -> int:
        service = build_persona_service(selling_point)
        created = 0
        for nombre, telefono, email in PERSONAS:
            try:
                service.create_persona(
                    CreatePersonaDTO(
                        nombre=nombre,
                        telefono=telefono,
                        email=email,
                        phone_notifications=True,
                        email_notifications=bool(email),
                    )
                )
            except PhoneAlreadyInUse:
                continue
            created += 1
        return created

    def _seed_catalog(self, selling_point: str) -> None:
        laboratorios = LaboratorioDjangoRepository(selling_point)
        for _, laboratorio in PRODUCTOS:
            laboratorios.get_or_create_by_nombre(laboratorio)
        almacenes = AlmacenDjangoRepository(selling_point)
        for almacen in ALMACENES:
            almacenes.get_or_create_by_nombre(almacen)

    def _seed_encargos(self, selling_point: str, count: int) -> int:
        if EncargoDjangoRepository(selling_point).list().exists():
            self.stdout.write(self.style.WARNING("Skipping encargos (already seeded)."))
            return 0

        service = build_encargo_service(selling_point)
        today = timezone.localdate()
        for i in range(count):
            nombre, telefono, _ = random.choice(PERSONAS)
            producto, laboratorio = random.choice(PRODUCTOS)
            # 0: just recorded, 1: ordered, 2: received, 3: delivered
            stage = random.choices([0, 1, 2, 3], weights=[0.15, 0.35, 0.3, 0.2], k=1)[0]
            service.create_encargo(
                CreateEncargoDTO(
                    fecha=today - timedelta(days=random.randint(0, 60)),
                    producto=producto,
                    laboratorio=laboratorio,
                    almacen=random.choice(ALMACENES),
                    persona=nombre,
                    telefono=telefono,
                    pagado=Decimal(random.choice(["0", "5.50", "12.95", "20"])),
                    observaciones=f"Encargo de prueba {i + 1}",
                    pedido=stage >= 1,
                    recibido=stage >= 2,
                    entregado=stage >= 3,
                    avisado=stage >= 2,
                    allow_duplicate=True,
                )
            )
        return count
