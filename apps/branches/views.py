import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdminOrReadOnly
from .models import Branch, BranchSettings
from .serializers import BranchSerializer, BranchSettingsSerializer

logger = logging.getLogger(__name__)


class BranchListCreateView(APIView):
    """
    API endpoint to list branches and, for administrators, to add one
    """
    permission_classes = [IsAdminOrReadOnly]

    @swagger_auto_schema(
        operation_description="List branches. Non-admin users only see their own branch.",
        manual_parameters=[openapi.Parameter('active', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN)],
        responses={200: BranchSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def get(self, request):
        branches = Branch.objects.all()
        if not request.user.is_admin:
            branches = branches.filter(pk=request.user.branch_id)
        if request.query_params.get('active') in ('true', 'True', '1'):
            branches = branches.filter(is_active=True)

        serializer = BranchSerializer(branches, many=True)
        return Response({'count': branches.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Create a branch (administrators only)",
        request_body=BranchSerializer,
        responses={201: BranchSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def post(self, request):
        serializer = BranchSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        branch = serializer.save()
        logger.info(f"Branch {branch.branch_name} created by {request.user.email}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class BranchDetailView(APIView):
    permission_classes = [IsAdminOrReadOnly]

    def get_branch(self, request, pk):
        branch = get_object_or_404(Branch, pk=pk)
        if not request.user.is_admin and branch.pk != request.user.branch_id:
            return None
        return branch

    @swagger_auto_schema(
        operation_description="Branch details",
        responses={200: BranchSerializer, 404: openapi.Response(description="Branch not found")},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def get(self, request, pk):
        branch = self.get_branch(request, pk)
        if branch is None:
            return Response({'error': 'Branch not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(BranchSerializer(branch).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Update a branch (administrators only)",
        request_body=BranchSerializer,
        responses={200: BranchSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def patch(self, request, pk):
        branch = get_object_or_404(Branch, pk=pk)
        serializer = BranchSerializer(branch, data=request.data, partial=True)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save()
        return Response(serializer.data, status=status.HTTP_200_OK)


class BranchSettingsView(APIView):
    """
    Business details and ticket defaults of one branch. Staff of the branch
    may read them, only administrators may change them.
    """
    permission_classes = [IsAdminOrReadOnly]

    @swagger_auto_schema(
        operation_description="Settings of a branch",
        responses={200: BranchSettingsSerializer, 404: openapi.Response(description="Branch not found")},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def get(self, request, pk):
        branch = get_object_or_404(Branch, pk=pk)
        if not request.user.is_admin and branch.pk != request.user.branch_id:
            return Response({'error': 'Branch not found'}, status=status.HTTP_404_NOT_FOUND)

        branch_settings = BranchSettings.for_branch(branch)
        return Response(BranchSettingsSerializer(branch_settings).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Update the settings of a branch (administrators only)",
        request_body=BranchSettingsSerializer,
        responses={200: BranchSettingsSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['Branches']
    )
    def patch(self, request, pk):
        branch = get_object_or_404(Branch, pk=pk)
        branch_settings = BranchSettings.for_branch(branch)
        serializer = BranchSettingsSerializer(branch_settings, data=request.data, partial=True)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save()
        logger.info(f"Settings of branch {branch.branch_name} updated by {request.user.email}")
        return Response(serializer.data, status=status.HTTP_200_OK)
