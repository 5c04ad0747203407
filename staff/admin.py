# staff/admin.py
from django.contrib import admin
from .models import Break, LeaveRecord, StaffMember


class BreakInline(admin.TabularInline):
    model = Break
    extra = 0


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "role", "branch", "is_active", "is_emergency_unavailable")
    list_filter = ("role", "branch", "is_active", "is_emergency_unavailable")
    list_editable = ("is_emergency_unavailable",)
    search_fields = ("name", "email")
    filter_horizontal = ("skills",)
    inlines = [BreakInline]


@admin.register(LeaveRecord)
class LeaveRecordAdmin(admin.ModelAdmin):
    list_display = ("staff", "kind", "start_date", "end_date", "start_at", "end_at")
    list_filter = ("kind", "staff")
    search_fields = ("staff__name", "reason")
