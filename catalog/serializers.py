from rest_framework import serializers

from .services import DEFAULT_RANGES


class RangePercentageSerializer(serializers.Serializer):
    id = serializers.ChoiceField(choices=[r.id for r in DEFAULT_RANGES])
    percentage = serializers.DecimalField(max_digits=7, decimal_places=2, min_value=-100)


class ApplyPricingSerializer(serializers.Serializer):
    ranges = RangePercentageSerializer(many=True, allow_empty=False)

    def validate_ranges(self, value):
        ids = [item["id"] for item in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Each range may only appear once.")
        return value
