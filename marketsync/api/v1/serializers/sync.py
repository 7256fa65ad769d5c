from rest_framework import serializers


class OrderSyncRequestSerializer(serializers.Serializer):
    """Exactly one of ``date``, ``month`` or ``status_changes`` picks the window."""

    seller_id = serializers.IntegerField(required=False)
    date = serializers.DateField(required=False)
    month = serializers.RegexField(r"^\d{4}-(0[1-9]|1[0-2])$", required=False)
    status_changes = serializers.BooleanField(default=False)
    days = serializers.IntegerField(min_value=1, max_value=30, default=2)

    def validate(self, attrs):
        chosen = [key for key in ("date", "month") if attrs.get(key)] + (["status_changes"] if attrs["status_changes"] else [])
        if len(chosen) != 1:
            raise serializers.ValidationError("Provide exactly one of date, month or status_changes.")
        return attrs


class ReprocessOrderSerializer(serializers.Serializer):
    seller_id = serializers.IntegerField(required=False)
    payload = serializers.JSONField(required=False)
