from rest_framework import serializers


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField(input_formats=['%Y-%m-%d'])
