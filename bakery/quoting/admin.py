from django.contrib import admin
from .models import QuoteOption, QuoteCategoryRule


@admin.register(QuoteOption)
class QuoteOptionAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'owner']
    list_filter = ['category', 'owner']
    search_fields = ['name']
    ordering = ['category', 'price']


@admin.register(QuoteCategoryRule)
class QuoteCategoryRuleAdmin(admin.ModelAdmin):
    list_display = ['category', 'is_required', 'owner', 'updated_at']
    list_filter = ['category', 'is_required']
