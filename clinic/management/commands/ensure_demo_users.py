"""
Seed a demo installation (idempotent).

Creates or resets the demo accounts, a doctor with a weekday schedule,
a few inventory items and the bed ledger.  Safe to run repeatedly.
"""
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from clinic.models import Doctor, InventoryItem, User
from clinic.services import ledger

DEMO_PASSWORD = "medbook123"

DEMO_USERS = [
    ("superadmin", "superadmin@medbook.local", User.ROLE_SUPERADMIN, "Super Admin"),
    ("admin", "admin@medbook.local", User.ROLE_ADMIN, "Clinic Admin"),
    ("doctor", "doctor@medbook.local", User.ROLE_DOCTOR, "Dr. Demo"),
    ("patient", "patient@medbook.local", User.ROLE_PATIENT, "Demo Patient"),
]

WEEKDAY_SCHEDULE = [
    {"day": day, "slots": [{"startTime": "09:00", "endTime": "12:00"}, {"startTime": "14:00", "endTime": "17:00"}]}
    for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
]

INVENTORY = [
    ("Paracetamol 500mg", "Medicine", 500, "tablets", 50, "Pharmacy A1", Decimal("0.20")),
    ("Amoxicillin 250mg", "Medicine", 200, "capsules", 40, "Pharmacy A2", Decimal("0.45")),
    ("Ibuprofen 400mg", "Medicine", 300, "tablets", 50, "Pharmacy A1", Decimal("0.30")),
    ("Surgical Gloves", "Supplies", 1000, "pairs", 200, "Store B1", Decimal("0.15")),
]


class Command(BaseCommand):
    help = f"Ensure demo users, a doctor, inventory and the bed ledger exist (password={DEMO_PASSWORD})."

    def handle(self, *args, **opts):
        for username, email, role, full_name in DEMO_USERS:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "email": email,
                    "role": role,
                    "full_name": full_name,
                    "password": make_password(DEMO_PASSWORD),
                    "is_staff": role in (User.ROLE_ADMIN, User.ROLE_SUPERADMIN),
                    "is_superuser": role == User.ROLE_SUPERADMIN,
                },
            )
            if not created:
                # reset password, role and activation
                u.password = make_password(DEMO_PASSWORD)
                u.email = email
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "email", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role})"))

        doctor, _ = Doctor.objects.update_or_create(
            email="doctor@medbook.local",
            defaults={
                "name": "Dr. Demo",
                "specialization": "General Medicine",
                "qualifications": ["MBBS"],
                "experience": 8,
                "consultation_fee": Decimal("50.00"),
                "availability": WEEKDAY_SCHEDULE,
                "status": "active",
            },
        )
        self.stdout.write(self.style.SUCCESS(f"ok: doctor #{doctor.pk} {doctor.name}"))

        for name, category, quantity, unit, min_quantity, location, price in INVENTORY:
            InventoryItem.objects.get_or_create(
                name=name,
                defaults={
                    "category": category,
                    "quantity": quantity,
                    "initial_stock": quantity,
                    "unit": unit,
                    "min_quantity": min_quantity,
                    "location": location,
                    "price": price,
                },
            )
        self.stdout.write(self.style.SUCCESS(f"ok: {len(INVENTORY)} inventory items"))

        status = ledger.get_status()
        self.stdout.write(self.style.SUCCESS(
            f"ok: bed ledger {status.beds_in_use}/{status.total_beds} in use"
        ))
        self.stdout.write(self.style.SUCCESS("Demo data ensured."))
