from rest_framework import serializers


class BedUpdateSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['occupy', 'release'], required=False)
    totalBeds = serializers.IntegerField(min_value=0, required=False)
    bedsInUse = serializers.IntegerField(min_value=0, required=False)

    def validate(self, attrs):
        action = attrs.get('action')
        overwrite = 'totalBeds' in attrs or 'bedsInUse' in attrs
        if action and overwrite:
            raise serializers.ValidationError('Use either action or totalBeds/bedsInUse, not both')
        if not action and not overwrite:
            raise serializers.ValidationError('Provide action or totalBeds/bedsInUse')
        return attrs
