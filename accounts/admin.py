from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'display_name', 'discord_uid', 'birthday_month', 'birthday_day', 'is_active')
    search_fields = ('username', 'display_name', 'discord_uid')
    list_filter = ('is_active', 'is_staff', 'birthday_month')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Discord', {'fields': ('discord_uid', 'display_name')}),
        ('Birthday', {'fields': ('birthday_month', 'birthday_day')}),
    )
