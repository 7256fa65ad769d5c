from rest_framework import serializers

from marketsync.services.dates import DateMode
from marketsync.services.sales_report_impl import MAX_PAGE_SIZE, ReportBucket, StatusFilter


class SalesQuerySerializer(serializers.Serializer):
    seller_id = serializers.IntegerField(required=False)
    date_mode = serializers.ChoiceField(choices=DateMode.choices, default=DateMode.SII)
    logistic_type = serializers.ChoiceField(choices=ReportBucket.choices, required=False)
    status = serializers.ChoiceField(choices=StatusFilter.choices, default=StatusFilter.ALL)


class DailySalesQuerySerializer(SalesQuerySerializer):
    date = serializers.DateField()


class RangeSalesQuerySerializer(SalesQuerySerializer):
    from_date = serializers.DateField()
    to_date = serializers.DateField()
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, default=20)
    group_by_pack = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if attrs["to_date"] < attrs["from_date"]:
            raise serializers.ValidationError({"to_date": "Must not be before from_date."})
        return attrs


class AuditQuerySerializer(serializers.Serializer):
    seller_id = serializers.IntegerField(required=False)
    date = serializers.DateField()


class UnprocessedOrderSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    status = serializers.CharField()
    logistic_type = serializers.CharField(allow_null=True)
    date_approved = serializers.DateTimeField(allow_null=True)
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    skus = serializers.SerializerMethodField()

    def get_skus(self, order) -> list:
        return [item.seller_sku or item.item_id for item in order.items.all()]
