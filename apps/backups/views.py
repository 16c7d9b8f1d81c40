import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpResponse
from rest_framework import status
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdminRole
from apps.tickets.exceptions import TicketError
from apps.tickets.views import BRANCH_PARAM, TicketAPIView, error_response

from .models import Backup
from .serializers import BackupSerializer, BackupCreateSerializer
from .services import BackupService

logger = logging.getLogger(__name__)


class BackupAPIView(TicketAPIView):

    def get_backup(self, request, pk):
        backup = Backup.objects.select_related('branch', 'created_by').filter(pk=pk).first()
        if backup is None or (not request.user.is_admin and backup.branch_id != request.user.branch_id):
            return None
        return backup


class BackupListCreateView(BackupAPIView):

    @swagger_auto_schema(
        operation_description="List backups of a branch, newest first",
        manual_parameters=[BRANCH_PARAM],
        responses={200: BackupSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def get(self, request):
        branch = self.get_branch(request)
        backups = Backup.objects.filter(branch=branch).select_related('branch', 'created_by').defer('payload')
        serializer = BackupSerializer(backups, many=True)
        return Response({'count': backups.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Back up the branch's tickets, extra time, sales and expenses",
        manual_parameters=[BRANCH_PARAM],
        request_body=BackupCreateSerializer,
        responses={201: BackupSerializer},
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def post(self, request):
        serializer = BackupCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        branch = self.get_branch(request)
        backup = BackupService.create_backup(
            branch,
            user=request.user,
            name=serializer.validated_data.get('name') or None
        )
        return Response(
            {'message': 'Backup created successfully', 'backup': BackupSerializer(backup).data},
            status=status.HTTP_201_CREATED
        )


class BackupDetailView(BackupAPIView):

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return super().get_permissions()

    @swagger_auto_schema(
        operation_description="Backup details without the payload",
        responses={200: BackupSerializer, 404: openapi.Response(description="Backup not found")},
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def get(self, request, pk):
        backup = self.get_backup(request, pk)
        if backup is None:
            return Response({'error': 'Backup not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(BackupSerializer(backup).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Delete a backup (administrators only)",
        responses={204: openapi.Response(description="Deleted")},
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def delete(self, request, pk):
        backup = self.get_backup(request, pk)
        if backup is None:
            return Response({'error': 'Backup not found'}, status=status.HTTP_404_NOT_FOUND)
        backup.delete()
        logger.info(f"Backup {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class BackupRestoreView(BackupAPIView):
    permission_classes = [IsAdminRole]

    @swagger_auto_schema(
        operation_description="Replace the branch's records with this backup (administrators only)",
        responses={
            200: BackupSerializer,
            400: openapi.Response(description="Backup cannot be restored"),
            404: openapi.Response(description="Backup not found"),
        },
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def post(self, request, pk):
        backup = self.get_backup(request, pk)
        if backup is None:
            return Response({'error': 'Backup not found'}, status=status.HTTP_404_NOT_FOUND)
        try:
            BackupService.restore_backup(backup)
        except TicketError as e:
            return error_response(e)

        logger.info(f"Backup {backup.pk} restored by {request.user.email}")
        return Response(
            {'message': 'Backup restored successfully', 'backup': BackupSerializer(backup).data},
            status=status.HTTP_200_OK
        )


class BackupDownloadView(BackupAPIView):

    @swagger_auto_schema(
        operation_description="Download the backup payload as a JSON file",
        responses={200: openapi.Response(description="JSON attachment")},
        security=[{'Bearer': []}],
        tags=['Backups']
    )
    def get(self, request, pk):
        backup = self.get_backup(request, pk)
        if backup is None:
            return Response({'error': 'Backup not found'}, status=status.HTTP_404_NOT_FOUND)

        filename = f"backup-{backup.branch_id}-{backup.created_at.strftime('%Y%m%d-%H%M%S')}.json"
        response = HttpResponse(
            json.dumps(backup.payload, cls=DjangoJSONEncoder, indent=2),
            content_type='application/json'
        )
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response
