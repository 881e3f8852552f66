"""
URL mappings for the medbook API.

Paths mirror the routes the browser front-end calls; trailing slashes
are deliberately omitted.
"""
from django.urls import path, include

from .auth_views import admin_signin_view, refresh_view, signin_view, signout_view
from .views import health
from .views.appointments import admin_appointments, appointment_detail, appointments
from .views.beds import admin_beds, bed_status
from .views.cron import check_appointments
from .views.dashboard import admin_dashboard, patient_dashboard
from .views.doctors import doctor_availability
from .views.inventory import create_prescription, inventory_analytics, inventory_sale
from .views.medical_records import my_medical_records


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/signin', signin_view, name='signin'),
    path('api/admin/signin', admin_signin_view, name='admin_signin'),
    path('api/signout', signout_view, name='signout'),
    path('api/auth/refresh', refresh_view, name='token_refresh'),
    # Appointments
    path('api/appointments', appointments, name='appointments'),
    path('api/appointments/<int:pk>', appointment_detail, name='appointment_detail'),
    path('api/admin/appointments', admin_appointments, name='admin_appointments'),
    path('api/cron/check-appointments', check_appointments, name='cron_check_appointments'),
    # Doctors
    path('api/doctors/<int:pk>/availability', doctor_availability, name='doctor_availability'),
    # Beds
    path('api/beds', bed_status, name='beds'),
    path('api/admin/beds', admin_beds, name='admin_beds'),
    # Pharmacy & records
    path('api/admin/medical-records/prescription', create_prescription, name='prescription_create'),
    path('api/admin/inventory/sale', inventory_sale, name='inventory_sale'),
    path('api/admin/analytics/inventory', inventory_analytics, name='inventory_analytics'),
    path('api/medical-records', my_medical_records, name='medical_records'),
    # Dashboards
    path('api/dashboard', patient_dashboard, name='dashboard'),
    path('api/admin/dashboard', admin_dashboard, name='admin_dashboard'),
]
