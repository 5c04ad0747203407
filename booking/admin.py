from django.contrib import admin
from .models import Service, Customer, Appointment, SlotClaim

@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "price", "duration_minutes", "active")
    list_filter = ("active", "category")
    search_fields = ("name",)
    list_editable = ("price", "duration_minutes", "active")  # allow inline toggle

@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "phone", "email", "gender", "is_active")
    search_fields = ("name", "phone", "email")

@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "customer", "service", "staff", "date", "start_time", "duration_minutes", "status")
    list_filter = ("status", "service", "staff", "date")
    search_fields = ("customer__name", "customer__phone", "service__name", "staff__name")
    readonly_fields = ("created_at", "cancellation_time")

@admin.register(SlotClaim)
class SlotClaimAdmin(admin.ModelAdmin):
    # Written by booking/signals.py; read-only here
    list_display = ("staff", "date", "minute", "appointment")
    list_filter = ("staff", "date")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
