from django.urls import path
from .views import (
    TicketListCreateView,
    QuickTicketView,
    TicketLookupView,
    TicketDetailView,
    TicketRefundView,
    PartialRefundView,
    PlayerStatusView,
    TicketPrintView,
    TicketStatusView,
    ExtraTimeView,
    ExtraTimeReportView,
)

app_name = 'tickets'

urlpatterns = [
    path('', TicketListCreateView.as_view(), name='ticket-list'),
    path('quick/', QuickTicketView.as_view(), name='ticket-quick'),
    path('lookup/<str:ticket_number>/', TicketLookupView.as_view(), name='ticket-lookup'),
    path('extra-time/report/', ExtraTimeReportView.as_view(), name='extra-time-report'),
    path('<int:pk>/', TicketDetailView.as_view(), name='ticket-detail'),
    path('<int:pk>/refund/', TicketRefundView.as_view(), name='ticket-refund'),
    path('<int:pk>/partial-refund/', PartialRefundView.as_view(), name='ticket-partial-refund'),
    path('<int:pk>/player-status/', PlayerStatusView.as_view(), name='ticket-player-status'),
    path('<int:pk>/print/', TicketPrintView.as_view(), name='ticket-print'),
    path('<int:pk>/status/', TicketStatusView.as_view(), name='ticket-status'),
    path('<int:pk>/extra-time/', ExtraTimeView.as_view(), name='ticket-extra-time'),
]
