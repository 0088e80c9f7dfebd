from rest_framework import serializers


class QuerySerializer(serializers.Serializer):
    """Validates filters from the query string; blank params count as absent."""

    @classmethod
    def from_request(cls, request):
        params = {key: value for key, value in request.query_params.items() if value.strip()}
        query = cls(data=params)
        query.is_valid(raise_exception=True)
        return query.validated_data


class ListQuerySerializer(QuerySerializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start_date, end_date = attrs.get("start_date"), attrs.get("end_date")
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({"end_date": ["The end date must be on or after the start date."]})
        return attrs
