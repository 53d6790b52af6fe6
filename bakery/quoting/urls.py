from django.urls import path
from .views import (
    quote_option_list_create, quote_option_detail,
    quote_rules, quote_preview, quote_convert,
)

urlpatterns = [
    # Option catalogue
    path('quote-options/', quote_option_list_create, name='quote-option-list-create'),
    path('quote-options/<int:pk>/', quote_option_detail, name='quote-option-detail'),
    path('quote-rules/', quote_rules, name='quote-rules'),

    # Quoter
    path('quotes/preview/', quote_preview, name='quote-preview'),
    path('quotes/convert/', quote_convert, name='quote-convert'),
]
