# registrations/serializers.py
from rest_framework import serializers

from .models import Category, Registration

# --- Category payloads (validated at the boundary, stored in Registration.data) ---

class SchoolPayloadSerializer(serializers.Serializer):
    school_name = serializers.CharField(min_length=2, max_length=255)
    contact_name = serializers.CharField(min_length=2, max_length=255)
    contact_position = serializers.CharField(min_length=2, max_length=255)
    contact_email = serializers.EmailField()
    contact_phone = serializers.CharField(min_length=10, max_length=20)
    student_names = serializers.ListField(
        child=serializers.CharField(min_length=2, max_length=255), min_length=1
    )
    # Optional cross-check from the form; the count always comes from student_names
    total_students = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        total = attrs.get('total_students')
        if total is not None and total != len(attrs['student_names']):
            raise serializers.ValidationError(
                {"total_students": "Does not match the number of student names."}
            )
        attrs['contact_email'] = attrs['contact_email'].strip()
        return attrs


class UniversityPayloadSerializer(serializers.Serializer):
    DEGREE_LEVELS = ['bachelor', 'master', 'phd', 'other']

    first_name = serializers.CharField(min_length=2, max_length=150)
    last_name = serializers.CharField(min_length=2, max_length=150)
    email = serializers.EmailField()
    university_name = serializers.CharField(min_length=2, max_length=255)
    degree_level = serializers.ChoiceField(choices=DEGREE_LEVELS)


class GeneralPayloadSerializer(serializers.Serializer):
    first_name = serializers.CharField(min_length=2, max_length=150)
    last_name = serializers.CharField(min_length=2, max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(min_length=10, max_length=20)
    profession = serializers.CharField(required=False, allow_blank=True, max_length=255)


PAYLOAD_SERIALIZERS = {
    Category.SCHOOL: SchoolPayloadSerializer,
    Category.UNIVERSITY: UniversityPayloadSerializer,
    Category.GENERAL: GeneralPayloadSerializer,
}

# --- Requests ---

class CreateRegistrationSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=Category.choices)
    # Price shown to the user; rejected if it disagrees with the server price
    amount = serializers.IntegerField(min_value=1, required=False)


class VerifyPaymentSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100)


class LookupSerializer(serializers.Serializer):
    email = serializers.EmailField(required=False)
    reference = serializers.CharField(required=False, max_length=100)

    def validate(self, attrs):
        if not attrs.get('email') and not attrs.get('reference'):
            raise serializers.ValidationError("Missing search parameter.")
        return attrs

# --- Responses ---

class RegistrationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Registration
        fields = [
            'id', 'category', 'reference', 'amount', 'status',
            'paystack_reference', 'paystack_access_code', 'data',
            'created_at', 'updated_at', 'verified_at', 'failed_at',
        ]
        read_only_fields = fields


class RegistrationSummarySerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    email = serializers.SerializerMethodField()
    temp_password = serializers.SerializerMethodField()

    class Meta:
        model = Registration
        fields = ['id', 'reference', 'category', 'status', 'created_at', 'name', 'email', 'temp_password']

    def get_name(self, obj):
        return obj.display_name

    def get_email(self, obj):
        return obj.contact_email

    def get_temp_password(self, obj):
        return (obj.data or {}).get('temp_password')
