from rest_framework import serializers
from .models import Backup


class BackupSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.branch_name', read_only=True)
    created_by_email = serializers.SerializerMethodField()

    class Meta:
        model = Backup
        fields = [
            'id',
            'branch',
            'branch_name',
            'name',
            'ticket_count',
            'extra_time_count',
            'sale_count',
            'expense_count',
            'is_automatic',
            'created_by_email',
            'restored_at',
            'created_at'
        ]
        read_only_fields = fields

    def get_created_by_email(self, obj):
        return obj.created_by.email if obj.created_by else None


class BackupCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
