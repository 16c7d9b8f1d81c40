import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdminRole
from apps.tickets.exceptions import TicketError, ValidationError
from apps.tickets.views import BRANCH_PARAM, WINDOW_PARAMS, TicketAPIView, error_response
from apps.tickets.dates import parse_day

from .models import Sale, Expense
from .serializers import (
    SaleSerializer,
    SaleCreateSerializer,
    ExpenseSerializer,
    ExpenseCreateSerializer,
    DailySummarySerializer,
    RangeSummarySerializer,
    DashboardSerializer,
)
from .services import FinanceService, ReportAggregator

logger = logging.getLogger(__name__)


class FinanceAPIView(TicketAPIView):
    """
    Branch scoping and date windows shared with the ticket views
    """

    def get_service(self):
        return FinanceService()

    def get_object(self, request, model, pk):
        obj = model.objects.filter(pk=pk).first()
        if obj is None or (not request.user.is_admin and obj.branch_id != request.user.branch_id):
            return None
        return obj


class SaleListCreateView(FinanceAPIView):

    @swagger_auto_schema(
        operation_description="List sales of a branch, newest first",
        manual_parameters=[BRANCH_PARAM, *WINDOW_PARAMS],
        responses={200: SaleSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Sales']
    )
    def get(self, request):
        service = self.get_service()
        branch = self.get_branch(request)
        try:
            start, end = self.get_window(request, service.dates)
        except TicketError as e:
            return error_response(e)

        sales = Sale.objects.filter(branch=branch).select_related('staff').prefetch_related('items')
        if start is not None:
            sales = sales.filter(sale_date__gte=start)
        if end is not None:
            sales = sales.filter(sale_date__lt=end)

        serializer = SaleSerializer(sales, many=True)
        return Response({'count': sales.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Record a sale. Number, total and date are set by the server.",
        manual_parameters=[BRANCH_PARAM],
        request_body=SaleCreateSerializer,
        responses={201: SaleSerializer, 400: openapi.Response(description="Invalid sale data")},
        security=[{'Bearer': []}],
        tags=['Sales']
    )
    def post(self, request):
        serializer = SaleCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        branch = self.get_branch(request)
        try:
            sale = self.get_service().create_sale(serializer.validated_data, branch, request.user)
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Sale recorded successfully', 'sale': SaleSerializer(sale).data},
            status=status.HTTP_201_CREATED
        )


class SaleDetailView(FinanceAPIView):

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return super().get_permissions()

    @swagger_auto_schema(
        operation_description="Sale details",
        responses={200: SaleSerializer, 404: openapi.Response(description="Sale not found")},
        security=[{'Bearer': []}],
        tags=['Sales']
    )
    def get(self, request, pk):
        sale = self.get_object(request, Sale, pk)
        if sale is None:
            return Response({'error': 'Sale not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(SaleSerializer(sale).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Delete a sale (administrators only)",
        responses={204: openapi.Response(description="Deleted")},
        security=[{'Bearer': []}],
        tags=['Sales']
    )
    def delete(self, request, pk):
        sale = self.get_object(request, Sale, pk)
        if sale is None:
            return Response({'error': 'Sale not found'}, status=status.HTTP_404_NOT_FOUND)
        sale.delete()
        logger.info(f"Sale {sale.sale_number} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class ExpenseListCreateView(FinanceAPIView):

    @swagger_auto_schema(
        operation_description="List expenses of a branch, newest first",
        manual_parameters=[
            BRANCH_PARAM,
            *WINDOW_PARAMS,
            openapi.Parameter('category', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
        responses={200: ExpenseSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Expenses']
    )
    def get(self, request):
        service = self.get_service()
        branch = self.get_branch(request)
        try:
            start, end = self.get_window(request, service.dates)
        except TicketError as e:
            return error_response(e)

        expenses = Expense.objects.filter(branch=branch).select_related('staff')
        if start is not None:
            expenses = expenses.filter(expense_date__gte=start)
        if end is not None:
            expenses = expenses.filter(expense_date__lt=end)
        category = request.query_params.get('category')
        if category:
            expenses = expenses.filter(category__iexact=category)

        serializer = ExpenseSerializer(expenses, many=True)
        return Response({'count': expenses.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Record an expense",
        manual_parameters=[BRANCH_PARAM],
        request_body=ExpenseCreateSerializer,
        responses={201: ExpenseSerializer, 400: openapi.Response(description="Invalid expense data")},
        security=[{'Bearer': []}],
        tags=['Expenses']
    )
    def post(self, request):
        serializer = ExpenseCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        branch = self.get_branch(request)
        try:
            expense = self.get_service().create_expense(serializer.validated_data, branch, request.user)
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Expense recorded successfully', 'expense': ExpenseSerializer(expense).data},
            status=status.HTTP_201_CREATED
        )


class ExpenseDetailView(FinanceAPIView):

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return super().get_permissions()

    @swagger_auto_schema(
        operation_description="Expense details",
        responses={200: ExpenseSerializer, 404: openapi.Response(description="Expense not found")},
        security=[{'Bearer': []}],
        tags=['Expenses']
    )
    def get(self, request, pk):
        expense = self.get_object(request, Expense, pk)
        if expense is None:
            return Response({'error': 'Expense not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(ExpenseSerializer(expense).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Delete an expense (administrators only)",
        responses={204: openapi.Response(description="Deleted")},
        security=[{'Bearer': []}],
        tags=['Expenses']
    )
    def delete(self, request, pk):
        expense = self.get_object(request, Expense, pk)
        if expense is None:
            return Response({'error': 'Expense not found'}, status=status.HTTP_404_NOT_FOUND)
        expense.delete()
        logger.info(f"Expense {expense.expense_number} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class DailySummaryView(FinanceAPIView):
    """
    API endpoint for one day's tickets, sales, expenses and profit/loss
    """

    @swagger_auto_schema(
        operation_description="Daily summary for a venue-local day (defaults to today)",
        manual_parameters=[
            BRANCH_PARAM,
            openapi.Parameter('date', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="YYYY-MM-DD"),
        ],
        responses={200: DailySummarySerializer},
        security=[{'Bearer': []}],
        tags=['Summary']
    )
    def get(self, request):
        branch = self.get_branch(request)
        try:
            day = parse_day(request.query_params.get('date'), 'date')
            summary = ReportAggregator().daily(branch, day)
        except TicketError as e:
            return error_response(e)
        return Response(DailySummarySerializer(summary).data, status=status.HTTP_200_OK)


class RangeSummaryView(FinanceAPIView):

    @swagger_auto_schema(
        operation_description="One summary per day between two dates plus totals",
        manual_parameters=[
            BRANCH_PARAM,
            openapi.Parameter('start_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=True),
            openapi.Parameter('end_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, required=True),
        ],
        responses={200: RangeSummarySerializer, 400: openapi.Response(description="Invalid date range")},
        security=[{'Bearer': []}],
        tags=['Summary']
    )
    def get(self, request):
        branch = self.get_branch(request)
        try:
            start_day = parse_day(request.query_params.get('start_date'), 'start_date')
            end_day = parse_day(request.query_params.get('end_date'), 'end_date')
            if start_day is None or end_day is None:
                raise ValidationError("start_date and end_date are required")
            summary = ReportAggregator().range(branch, start_day, end_day)
        except TicketError as e:
            return error_response(e)
        return Response(RangeSummarySerializer(summary).data, status=status.HTTP_200_OK)


class DashboardView(FinanceAPIView):

    @swagger_auto_schema(
        operation_description="Today's figures and all-time totals of a branch",
        manual_parameters=[BRANCH_PARAM],
        responses={200: DashboardSerializer},
        security=[{'Bearer': []}],
        tags=['Summary']
    )
    def get(self, request):
        branch = self.get_branch(request)
        summary = ReportAggregator().dashboard(branch)
        return Response(DashboardSerializer(summary).data, status=status.HTTP_200_OK)
