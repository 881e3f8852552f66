"""
Django admin registrations for the clinic models.

Users, doctors and inventory are managed here.  Appointment status and
the bed ledger are read-only: they change only through the lifecycle
services so the ledger stays consistent with appointment state.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    User,
    Doctor,
    Appointment,
    AppointmentTransition,
    BedLedger,
    InventoryItem,
    MedicalRecord,
    PrescribedMedication,
    SaleRecord,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'full_name', 'role', 'is_staff', 'is_active')
    list_filter = ('role', 'is_staff', 'is_active')
    search_fields = ('username', 'email', 'full_name', 'phone')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Clinic', {'fields': ('role', 'full_name', 'phone', 'date_of_birth', 'gender')}),
    )


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'specialization', 'status', 'experience', 'average_rating')
    list_filter = ('status', 'specialization')
    search_fields = ('name', 'email', 'specialization')


class AppointmentTransitionInline(admin.TabularInline):
    model = AppointmentTransition
    extra = 0
    can_delete = False
    readonly_fields = ('from_status', 'to_status', 'operator', 'bed_delta', 'reason', 'timestamp')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'time_slot', 'status', 'type')
    list_filter = ('status', 'type')
    search_fields = ('id', 'patient__username', 'patient__email', 'doctor__name', 'reason')
    readonly_fields = ('status', 'created_at', 'updated_at')
    inlines = [AppointmentTransitionInline]


@admin.register(BedLedger)
class BedLedgerAdmin(admin.ModelAdmin):
    list_display = ('total_beds', 'available_beds', 'beds_in_use', 'version', 'updated_at')
    readonly_fields = ('total_beds', 'available_beds', 'beds_in_use', 'version', 'updated_at')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'quantity', 'min_quantity', 'sold_quantity', 'price')
    list_filter = ('category',)
    search_fields = ('name', 'location')
    readonly_fields = ('sold_quantity', 'last_updated', 'created_at')


class PrescribedMedicationInline(admin.TabularInline):
    model = PrescribedMedication
    extra = 0


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'type', 'date')
    list_filter = ('type',)
    search_fields = ('patient__username', 'patient__email', 'diagnosis')
    inlines = [PrescribedMedicationInline]


@admin.register(SaleRecord)
class SaleRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'item', 'quantity', 'total_amount', 'user', 'date')
    search_fields = ('item__name', 'user__username')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('user__username',)
