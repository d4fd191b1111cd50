# domain_extensions/kenya_liquor/api.py
"""
API endpoints for KRA excise duty and VAT calculation.
"""

import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from domain_extensions.kenya_liquor.exceptions import InvalidInput
from domain_extensions.kenya_liquor.extension import get_calculator
from domain_extensions.kenya_liquor.serializers import ComposeTaxesSerializer, TaxQuoteSerializer
from domain_extensions.kenya_liquor.services import serialize_breakdown, serialize_quote

logger = logging.getLogger(__name__)


def _resolve_request_tenant(request):
    """Resolve tenant from request (set by tenancy middleware, or the user)"""
    t = getattr(request, "tenant", None)
    if t:
        return t
    user = getattr(request, "user", None)
    if user is not None:
        if getattr(user, "tenant", None):
            return user.tenant
        if getattr(user, "active_tenant", None):
            return user.active_tenant
    return None


def _invalid(e: InvalidInput):
    logger.warning(f"Rejected KRA tax request: {e}")
    return Response({"ok": False, "detail": str(e)}, status=status.HTTP_400_BAD_REQUEST)


class TaxRatesView(APIView):
    """
    GET /api/v1/domain-extensions/kenya-liquor/tax/rates

    Excise rates per liter by category, the default rate and the VAT rate
    in effect for the current tenant.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            calc = get_calculator(_resolve_request_tenant(request))
        except InvalidInput as e:
            return _invalid(e)
        return Response({"ok": True, **calc.config.as_dict()})


class TaxQuoteView(APIView):
    """
    POST /api/v1/domain-extensions/kenya-liquor/tax/quote
    Body:
    {
      "lines": [
        {"variant_id": "123", "category_name": "Beer", "size_ml": 500, "quantity": 2, "unit_price": "250.00"},
        ...
      ]
    }
    Response:
    {"ok": true, "quote": { subtotal, excise_duty, taxes: {...}, sale: {...}, lines: [...] }}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = TaxQuoteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            calc = get_calculator(_resolve_request_tenant(request))
            quote = calc.quote_cart(ser.cart_lines())
        except InvalidInput as e:
            return _invalid(e)

        return Response({"ok": True, "quote": serialize_quote(quote, calc.config.minor_unit)})


class ComposeTaxesView(APIView):
    """
    POST /api/v1/domain-extensions/kenya-liquor/tax/compose
    Body: {"subtotal": "1160.00", "excise_duty": "100.00"}

    For callers that already know the VAT-inclusive subtotal and total excise.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = ComposeTaxesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            calc = get_calculator(_resolve_request_tenant(request))
            taxes = calc.compose_taxes(
                ser.validated_data["subtotal"],
                ser.validated_data["excise_duty"],
            )
        except InvalidInput as e:
            return _invalid(e)

        return Response({"ok": True, "taxes": serialize_breakdown(taxes, calc.config.minor_unit)})
