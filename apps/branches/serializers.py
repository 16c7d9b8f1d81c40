from rest_framework import serializers
from .models import Branch, BranchSettings


class BranchSerializer(serializers.ModelSerializer):
    """
    Serializer for Branch model
    """
    class Meta:
        model = Branch
        fields = [
            'id',
            'branch_name',
            'location',
            'contact_number',
            'email',
            'manager',
            'opening_time',
            'closing_time',
            'is_active',
            'created_at',
            'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        opening = attrs.get('opening_time', getattr(self.instance, 'opening_time', None))
        closing = attrs.get('closing_time', getattr(self.instance, 'closing_time', None))
        if opening and closing and closing <= opening:
            raise serializers.ValidationError("Closing time must be after opening time")
        return attrs


class BranchSettingsSerializer(serializers.ModelSerializer):
    contact_numbers = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    ticket_rules = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    branch_name = serializers.CharField(source='branch.branch_name', read_only=True)

    class Meta:
        model = BranchSettings
        fields = [
            'branch',
            'branch_name',
            'company_name',
            'company_address',
            'contact_numbers',
            'email',
            'pan_number',
            'reg_no',
            'logo',
            'default_currency',
            'default_language',
            'conversion_rate',
            'nepali_date_format',
            'ticket_rules',
            'updated_at'
        ]
        read_only_fields = ['branch', 'updated_at']

    def validate_contact_numbers(self, value):
        return [number.strip() for number in value if number.strip()]

    def validate_ticket_rules(self, value):
        return [rule.strip() for rule in value if rule.strip()]

    def validate_conversion_rate(self, value):
        if value <= 0:
            raise serializers.ValidationError("Conversion rate must be greater than zero")
        return value
