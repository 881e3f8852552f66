from rest_framework import serializers

from clinic.utils import clinic_timezone


class ClinicDateTimeField(serializers.DateTimeField):
    """ISO-8601 datetime; values without an offset are clinic wall-clock time."""

    def default_timezone(self):
        return clinic_timezone()
