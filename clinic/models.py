"""
Database models for the medbook backend.

These models capture the booking side of the hospital (users, doctors,
appointments and their transition history), the singleton bed ledger
and the pharmacy side (inventory items, sales and medical records with
prescribed medications).  Field names follow Django conventions; the
API layer converts them to the camelCase keys used by the front-end.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import F, Q


class User(AbstractUser):
    """Custom user model with a role.

    Patients sign up on their own, staff accounts are created by
    administrators.  ``email`` is the sign-in identifier and the
    destination of appointment notifications.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_SUPERADMIN = 'superadmin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_SUPERADMIN, 'Super Administrator'),
    ]
    GENDER_CHOICES = [
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Doctor(models.Model):
    """A doctor that appointments can be booked with.

    ``availability`` holds the recurring weekly schedule as a list of
    ``{"day": "Monday", "slots": [{"startTime": "09:00", "endTime": "12:00"}]}``
    entries; times are wall-clock times in ``CLINIC_TIME_ZONE``.
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
    ]
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    specialization = models.CharField(max_length=255)
    qualifications = models.JSONField(default=list, blank=True)
    experience = models.PositiveIntegerField(default=0)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    availability = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='active', db_index=True)
    ratings = models.JSONField(default=list, blank=True)
    average_rating = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.specialization})"


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_CANCELLED = 'cancelled'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
    ]
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments')
    time_slot = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    reason = models.TextField()
    type = models.CharField(max_length=64, default='regular')
    symptoms = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'time_slot'], name='clinic_appo_status_6d1f0b_idx'),
            models.Index(fields=['doctor', 'time_slot'], name='clinic_appo_doctor__3c9a52_idx'),
            models.Index(fields=['patient', 'status'], name='clinic_appo_patient_a8e4c7_idx'),
        ]

    def __str__(self) -> str:
        return f"Appointment {self.pk} ({self.status})"


class AppointmentTransition(models.Model):
    """Records a status change (or reschedule) of an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=16)
    to_status = models.CharField(max_length=16)
    operator = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment_transitions')
    bed_delta = models.SmallIntegerField(default=0)
    reason = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status} → {self.to_status}"


class BedLedger(models.Model):
    """Singleton counter of hospital bed capacity.

    Always accessed through :mod:`clinic.services.ledger`; the row with
    ``pk=1`` is the only one.  ``version`` increases on every change.
    """
    SINGLETON_ID = 1

    total_beds = models.PositiveIntegerField()
    available_beds = models.PositiveIntegerField()
    beds_in_use = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(available_beds__gte=0) & Q(beds_in_use__gte=0),
                name='bed_ledger_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(available_beds=F('total_beds') - F('beds_in_use')),
                name='bed_ledger_balanced',
            ),
        ]

    def __str__(self) -> str:
        return f"Beds {self.beds_in_use}/{self.total_beds} in use"


class InventoryItem(models.Model):
    CATEGORY_CHOICES = [
        ('Medicine', 'Medicine'),
        ('Equipment', 'Equipment'),
        ('Supplies', 'Supplies'),
        ('Laboratory', 'Laboratory'),
    ]
    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, db_index=True)
    quantity = models.PositiveIntegerField(default=0)
    unit = models.CharField(max_length=32)
    min_quantity = models.PositiveIntegerField(default=0)
    location = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    initial_stock = models.PositiveIntegerField(default=0)
    sold_quantity = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name='inventory_quantity_non_negative'),
        ]

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_quantity

    def __str__(self) -> str:
        return f"{self.name} ({self.quantity} {self.unit})"


class MedicalRecord(models.Model):
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_records')
    type = models.CharField(max_length=64)
    date = models.DateTimeField()
    diagnosis = models.TextField(blank=True)
    treatment = models.TextField(blank=True)
    doctor_notes = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)
    lab_results = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'date'], name='clinic_medi_patient_5b2e91_idx')]

    def __str__(self) -> str:
        return f"{self.type} for {self.patient_id} @ {self.date:%F}"


class PrescribedMedication(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='medications')
    item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='prescriptions')
    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=255, blank=True)
    duration = models.CharField(max_length=255, blank=True)
    quantity = models.PositiveIntegerField()
    unit = models.CharField(max_length=32, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class SaleRecord(models.Model):
    """Append-only record of stock leaving the inventory."""
    item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='sales')
    quantity = models.PositiveIntegerField()
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    medical_record = models.ForeignKey(MedicalRecord, null=True, blank=True, on_delete=models.SET_NULL, related_name='sales')
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='purchases')
    date = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self) -> str:
        return f"sale {self.item_id} x{self.quantity}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audi_action_0f4b6e_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audi_object__9d27c3_idx'),
        ]
