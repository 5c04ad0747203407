from django.contrib import admin
from notifications.models import Notification

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('customer', 'appointment', 'channel', 'sent', 'created_at')
    list_filter = ('sent', 'channel', 'created_at')
    search_fields = ('customer__name', 'customer__phone', 'message', 'error')
