# domain_extensions/kenya_liquor/serializers.py
from decimal import Decimal

from rest_framework import serializers

from domain_extensions.kenya_liquor.services import CartLine


class CartLineSerializer(serializers.Serializer):
    variant_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    category_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, trim_whitespace=False)
    size_ml = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal("0"))
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))

    def to_cart_line(self, data) -> CartLine:
        return CartLine(
            category_name=data.get("category_name") or None,
            volume_ml=data["size_ml"],
            quantity=data["quantity"],
            unit_price=data["unit_price"],
            variant_id=data.get("variant_id") or None,
        )


class TaxQuoteSerializer(serializers.Serializer):
    lines = CartLineSerializer(many=True, allow_empty=True)

    def cart_lines(self):
        line_serializer = CartLineSerializer()
        return [line_serializer.to_cart_line(l) for l in self.validated_data["lines"]]


class ComposeTaxesSerializer(serializers.Serializer):
    # Negative amounts are left to the calculator so they surface as InvalidInput
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=4)
    excise_duty = serializers.DecimalField(max_digits=14, decimal_places=4, required=False, default=0)
