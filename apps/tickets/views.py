import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from apps.accounts.permissions import IsAdminRole
from apps.accounts.services import BranchAccessService

from .dates import parse_day
from .exceptions import TicketError, NotFoundError, ValidationError
from .serializers import (
    TicketSerializer,
    TicketCreateSerializer,
    QuickTicketSerializer,
    TicketUpdateSerializer,
    ExtraTimeSerializer,
    ExtraTimeEntrySerializer,
    RefundSerializer,
    PartialRefundSerializer,
    PlayerStatusSerializer,
    StatusChangeSerializer,
)
from .services import TicketLifecycle

logger = logging.getLogger(__name__)

BRANCH_PARAM = openapi.Parameter(
    'branch', openapi.IN_QUERY, type=openapi.TYPE_INTEGER,
    description="Branch id, defaults to the user's branch"
)
WINDOW_PARAMS = [
    openapi.Parameter('date', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="Single day, YYYY-MM-DD"),
    openapi.Parameter('start_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="YYYY-MM-DD"),
    openapi.Parameter('end_date', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="YYYY-MM-DD, inclusive"),
]


def error_response(error):
    return Response({'error': error.message}, status=error.status_code)


class TicketAPIView(APIView):
    """
    Base view wiring the ticket lifecycle and branch scoping
    """
    permission_classes = [IsAuthenticated]

    def get_lifecycle(self):
        return TicketLifecycle()

    def get_branch(self, request):
        branch_id = request.query_params.get('branch')
        if not branch_id and hasattr(request.data, 'get'):
            branch_id = request.data.get('branch')
        return BranchAccessService.resolve_branch(request.user, branch_id)

    def get_ticket(self, request, lifecycle, ticket_id):
        """
        Ticket visible to the user; other branches' tickets read as missing
        """
        ticket = lifecycle.get(ticket_id)
        if not request.user.is_admin and ticket.branch_id != request.user.branch_id:
            raise NotFoundError("Ticket not found")
        return ticket

    def get_window(self, request, dates):
        """
        Aware [start, end) from date, or start_date and end_date (inclusive)
        """
        params = request.query_params
        day = parse_day(params.get('date'), 'date')
        start_day = day or parse_day(params.get('start_date'), 'start_date')
        end_day = day or parse_day(params.get('end_date'), 'end_date')
        if start_day and end_day and end_day < start_day:
            raise ValidationError("end_date cannot be before start_date")
        start = dates.day_bounds(start_day)[0] if start_day else None
        end = dates.day_bounds(end_day)[1] if end_day else None
        return start, end


class TicketListCreateView(TicketAPIView):
    """
    API endpoint to list a branch's tickets and to book new ones
    """

    @swagger_auto_schema(
        operation_description="List tickets of a branch, newest first",
        manual_parameters=[
            BRANCH_PARAM,
            *WINDOW_PARAMS,
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
            openapi.Parameter('search', openapi.IN_QUERY, type=openapi.TYPE_STRING,
                              description="Ticket number, customer name or contact number"),
        ],
        responses={200: TicketSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def get(self, request):
        lifecycle = self.get_lifecycle()
        branch = self.get_branch(request)
        try:
            start, end = self.get_window(request, lifecycle.dates)
        except TicketError as e:
            return error_response(e)

        tickets = lifecycle.list_for_branch(
            branch,
            start=start,
            end=end,
            status=request.query_params.get('status'),
            search=request.query_params.get('search'),
        )
        serializer = TicketSerializer(tickets, many=True)
        return Response({'count': tickets.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Book a ticket. Number, fee, booking date and time are set by the server.",
        manual_parameters=[BRANCH_PARAM],
        request_body=TicketCreateSerializer,
        responses={
            201: TicketSerializer,
            400: openapi.Response(description="Invalid ticket data"),
            409: openapi.Response(description="Ticket number collision, retry"),
        },
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def post(self, request):
        serializer = TicketCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        branch = self.get_branch(request)
        try:
            ticket = self.get_lifecycle().create_ticket(serializer.validated_data, branch, request.user)
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Ticket created successfully', 'ticket': TicketSerializer(ticket).data},
            status=status.HTTP_201_CREATED
        )


class QuickTicketView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Book a ticket with counter defaults (Adult, configured fee)",
        manual_parameters=[BRANCH_PARAM],
        request_body=QuickTicketSerializer,
        responses={201: TicketSerializer, 400: openapi.Response(description="Invalid ticket data")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def post(self, request):
        serializer = QuickTicketSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = {key: value for key, value in serializer.validated_data.items() if value is not None}
        branch = self.get_branch(request)
        try:
            ticket = self.get_lifecycle().quick_create(data, branch, request.user)
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Ticket created successfully', 'ticket': TicketSerializer(ticket).data},
            status=status.HTTP_201_CREATED
        )


class TicketLookupView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Find a ticket by its number",
        manual_parameters=[BRANCH_PARAM],
        responses={200: TicketSerializer, 404: openapi.Response(description="Ticket not found")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def get(self, request, ticket_number):
        branch = None
        if request.query_params.get('branch') or not request.user.is_admin:
            branch = self.get_branch(request)
        try:
            ticket = self.get_lifecycle().lookup(ticket_number, branch=branch)
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)


class TicketDetailView(TicketAPIView):
    """
    API endpoint to read, edit or delete one ticket
    """

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdminRole()]
        return super().get_permissions()

    @swagger_auto_schema(
        operation_description="Ticket details",
        responses={200: TicketSerializer, 404: openapi.Response(description="Ticket not found")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def get(self, request, pk):
        try:
            ticket = self.get_ticket(request, self.get_lifecycle(), pk)
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Edit customer, player, remarks, group or booking date fields",
        request_body=TicketUpdateSerializer,
        responses={
            200: TicketSerializer,
            400: openapi.Response(description="Invalid data"),
            404: openapi.Response(description="Ticket not found"),
            409: openapi.Response(description="Concurrent modification"),
        },
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def patch(self, request, pk):
        serializer = TicketUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.update_details(pk, serializer.validated_data)
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Delete a ticket (administrators only)",
        responses={204: openapi.Response(description="Deleted"), 404: openapi.Response(description="Ticket not found")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def delete(self, request, pk):
        lifecycle = self.get_lifecycle()
        try:
            lifecycle.delete(pk)
        except TicketError as e:
            return error_response(e)
        logger.info(f"Ticket {pk} deleted by {request.user.email}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class TicketRefundView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Refund the whole ticket, less an optional cancellation fee",
        request_body=RefundSerializer,
        responses={
            200: TicketSerializer,
            400: openapi.Response(description="Invalid data or ticket already refunded"),
            404: openapi.Response(description="Ticket not found"),
        },
        security=[{'Bearer': []}],
        tags=['Refunds']
    )
    def post(self, request, pk):
        serializer = RefundSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.refund_full(
                pk,
                data['reason'],
                cancellation_fee=data['cancellation_fee'],
                method=data['refund_method'],
                reference=data['payment_reference'],
                refund_name=data['refund_name'],
                actor=request.user,
            )
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Ticket refunded successfully', 'ticket': TicketSerializer(ticket).data},
            status=status.HTTP_200_OK
        )


class PartialRefundView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Refund selected players who have not played yet",
        request_body=PartialRefundSerializer,
        responses={
            200: TicketSerializer,
            400: openapi.Response(description="Unknown or already refunded players"),
            404: openapi.Response(description="Ticket not found"),
        },
        security=[{'Bearer': []}],
        tags=['Refunds']
    )
    def post(self, request, pk):
        serializer = PartialRefundSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.refund_partial(
                pk,
                data['refunded_player_names'],
                data['reason'],
                cancellation_fee=data['cancellation_fee'],
                method=data['refund_method'],
                reference=data['payment_reference'],
                actor=request.user,
            )
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Players refunded successfully', 'ticket': TicketSerializer(ticket).data},
            status=status.HTTP_200_OK
        )


class PlayerStatusView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Set how many players have played; waiting players are recomputed",
        request_body=PlayerStatusSerializer,
        responses={200: TicketSerializer, 400: openapi.Response(description="Count out of range")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def patch(self, request, pk):
        serializer = PlayerStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.update_player_status(pk, serializer.validated_data['played_players'])
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)


class TicketPrintView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Mark the ticket as printed",
        responses={200: TicketSerializer, 404: openapi.Response(description="Ticket not found")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def post(self, request, pk):
        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.mark_printed(pk)
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)


class TicketStatusView(TicketAPIView):
    permission_classes = [IsAdminRole]

    @swagger_auto_schema(
        operation_description="Close a ticket as completed or cancelled (administrators only)",
        request_body=StatusChangeSerializer,
        responses={200: TicketSerializer, 400: openapi.Response(description="Ticket already closed")},
        security=[{'Bearer': []}],
        tags=['Tickets']
    )
    def patch(self, request, pk):
        serializer = StatusChangeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            ticket = self.get_lifecycle().change_status(pk, serializer.validated_data['status'])
        except TicketError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_200_OK)


class ExtraTimeView(TicketAPIView):
    """
    API endpoint for a ticket's extra time entries
    """

    @swagger_auto_schema(
        operation_description="Extra time entries of a ticket, oldest first",
        responses={200: ExtraTimeEntrySerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Extra Time']
    )
    def get(self, request, pk):
        try:
            ticket = self.get_ticket(request, self.get_lifecycle(), pk)
        except TicketError as e:
            return error_response(e)

        entries = ticket.extra_time_entries.select_related('added_by', 'ticket')
        return Response(
            {
                'total_extra_minutes': ticket.total_extra_minutes,
                'results': ExtraTimeEntrySerializer(entries, many=True).data
            },
            status=status.HTTP_200_OK
        )

    @swagger_auto_schema(
        operation_description="Add paid extra time; the net charge is added to the ticket fee",
        request_body=ExtraTimeSerializer,
        responses={
            201: TicketSerializer,
            400: openapi.Response(description="Invalid minutes or charge, or ticket closed"),
            404: openapi.Response(description="Ticket not found"),
            409: openapi.Response(description="Concurrent modification"),
        },
        security=[{'Bearer': []}],
        tags=['Extra Time']
    )
    def post(self, request, pk):
        serializer = ExtraTimeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        lifecycle = self.get_lifecycle()
        try:
            self.get_ticket(request, lifecycle, pk)
            ticket = lifecycle.add_extra_time(
                pk,
                data['minutes'],
                data['charge'],
                discount=data['discount'],
                notes=data['notes'],
                label=data.get('label'),
                actor=request.user,
            )
        except TicketError as e:
            return error_response(e)

        return Response(
            {'message': 'Extra time added successfully', 'ticket': TicketSerializer(ticket).data},
            status=status.HTTP_201_CREATED
        )


class ExtraTimeReportView(TicketAPIView):

    @swagger_auto_schema(
        operation_description="Extra time entries of a branch in a date window",
        manual_parameters=[BRANCH_PARAM, *WINDOW_PARAMS],
        responses={200: ExtraTimeEntrySerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Extra Time']
    )
    def get(self, request):
        lifecycle = self.get_lifecycle()
        branch = self.get_branch(request)
        try:
            start, end = self.get_window(request, lifecycle.dates)
        except TicketError as e:
            return error_response(e)

        entries = list(lifecycle.extra_time_report(branch, start=start, end=end))
        return Response(
            {
                'count': len(entries),
                'total_minutes': sum(entry.minutes for entry in entries),
                'total_amount': str(sum((entry.amount for entry in entries), Decimal('0'))),
                'results': ExtraTimeEntrySerializer(entries, many=True).data
            },
            status=status.HTTP_200_OK
        )
