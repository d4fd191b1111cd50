# domain_extensions/kenya_liquor/urls.py
from django.urls import path
from .api import (
    TaxRatesView,
    TaxQuoteView,
    ComposeTaxesView,
)

app_name = "kenya_liquor"

urlpatterns = [
    path("tax/rates", TaxRatesView.as_view(), name="tax-rates"),
    path("tax/quote", TaxQuoteView.as_view(), name="tax-quote"),
    path("tax/compose", ComposeTaxesView.as_view(), name="tax-compose"),
]
