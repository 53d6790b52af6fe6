from rest_framework import serializers

from bakery.core.exceptions import ValidationError
from .engine import QuoteBuilder
from .models import (
    QuoteOption, CATEGORY_CHOICES, SIZE, FLAVOR, FILLING, COVERING, DECORATION, SPECIAL,
)

# Request field -> category for the multi-select lists
MULTI_SELECT_FIELDS = (
    ('fillings', FILLING),
    ('coverings', COVERING),
    ('decorations', DECORATION),
    ('specials', SPECIAL),
)


class QuoteOptionSerializer(serializers.ModelSerializer):
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    category_display = serializers.CharField(source='get_category_display', read_only=True)

    class Meta:
        model = QuoteOption
        fields = ['id', 'category', 'category_display', 'name', 'price', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate(self, attrs):
        owner = self.context.get('owner')
        category = attrs.get('category', getattr(self.instance, 'category', None))
        name = attrs.get('name', getattr(self.instance, 'name', None))
        if owner is not None and category and name:
            duplicates = QuoteOption.objects.filter(owner=owner, category=category, name__iexact=name)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError({'name': 'This option already exists in the category'})
        return attrs


class QuoteRuleSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=CATEGORY_CHOICES)
    is_required = serializers.BooleanField()
    locked = serializers.BooleanField(read_only=True)


class QuoteSelectionSerializer(serializers.Serializer):
    """Option ids picked in the quoter, plus who the cake is for"""
    size = serializers.IntegerField(required=False, allow_null=True)
    flavor = serializers.IntegerField(required=False, allow_null=True)
    fillings = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    coverings = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    decorations = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    specials = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    customer = serializers.IntegerField(required=False, allow_null=True)

    def build_quote(self, owner):
        """Load the selected options (owner-scoped) into a QuoteBuilder"""
        data = self.validated_data
        option_ids = set(data.get(field) for field in ('size', 'flavor') if data.get(field) is not None)
        for field, _ in MULTI_SELECT_FIELDS:
            option_ids.update(data.get(field, []))

        options = {option.pk: option for option in QuoteOption.objects.filter(owner=owner, pk__in=option_ids)}
        missing = sorted(option_ids - set(options))
        if missing:
            raise ValidationError('Some quote options were not found', missing_options=missing)

        builder = QuoteBuilder(owner_id=owner.pk)
        for category in (SIZE, FLAVOR):
            if data.get(category) is not None:
                builder.set_option(category, options[data[category]])
        for field, category in MULTI_SELECT_FIELDS:
            for option_id in data.get(field, []):
                builder.add_option(category, options[option_id])
        return builder
