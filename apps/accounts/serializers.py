from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

User = get_user_model()


class LoginSerializer(serializers.Serializer):
    """
    Serializer for email/password login
    """
    email = serializers.EmailField(help_text="Login email")
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        help_text="Account password"
    )


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_new_password(self, value):
        validate_password(value)
        return value


class UserProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for user profile
    """
    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'phone', 'role', 'branch', 'last_login', 'created_at', 'updated_at']
        read_only_fields = ['id', 'role', 'branch', 'last_login', 'created_at', 'updated_at']

    def validate_phone(self, value):
        """
        Validate phone number format (digits only, at least 7)
        """
        if value:
            cleaned = ''.join(filter(str.isdigit, value))
            if len(cleaned) < 7:
                raise serializers.ValidationError("Phone number must be at least 7 digits")
            return cleaned
        return value


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer used by administrators to manage staff accounts
    """
    password = serializers.CharField(write_only=True, required=False, trim_whitespace=False)

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'phone', 'role', 'branch', 'is_active', 'password', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        if self.instance is None and not attrs.get('password'):
            raise serializers.ValidationError({'password': 'This field is required.'})
        if attrs.get('role', getattr(self.instance, 'role', None)) != User.ROLE_ADMIN:
            branch = attrs.get('branch', getattr(self.instance, 'branch', None))
            if branch is None:
                raise serializers.ValidationError({'branch': 'Branch is required for non-admin users'})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance
