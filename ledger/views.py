import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from cafepos.permissions import IsManagerOrAdmin
from cafepos.scoping import restaurant_scope, scoped
from orders.mixins import MirroredListMixin, ScopedQuerysetMixin
from .models import Debtor, Expense, Staff, WagePayment
from .serializers import DebtorSerializer, ExpenseSerializer, StaffSerializer, WagePaymentSerializer


logger = logging.getLogger(__name__)


class LedgerView:
    permission_classes = [IsManagerOrAdmin]


class StaffListView(LedgerView, ScopedQuerysetMixin, MirroredListMixin, generics.ListCreateAPIView):
    queryset = Staff.objects.all()
    serializer_class = StaffSerializer
    mirror_collection = 'staff'


class StaffDetailView(LedgerView, ScopedQuerysetMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Staff.objects.all()
    serializer_class = StaffSerializer
    lookup_url_kwarg = 'staff_id'


class StaffWagesView(LedgerView, MirroredListMixin, generics.ListCreateAPIView):
    serializer_class = WagePaymentSerializer

    @property
    def mirror_collection(self):
        return f"wage_payments:{self.kwargs['staff_id']}"

    def get_staff(self):
        return get_object_or_404(scoped(Staff.objects.all(), self.request.user), id=self.kwargs['staff_id'])

    def get_queryset(self):
        return WagePayment.objects.filter(staff=self.get_staff()).select_related('staff')

    def perform_create(self, serializer):
        staff = self.get_staff()
        payment = serializer.save(
            staff=staff,
            restaurant_id=restaurant_scope(self.request.user),
            paid_by=self.request.user.name or self.request.user.role,
        )
        logger.info("Wage %s paid to %s by %s", payment.amount, staff.name, payment.paid_by)

    @extend_schema(
        summary="Wage payments of a staff member",
        parameters=[
            OpenApiParameter(
                name='staff_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Staff ID'
            )
        ]
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ExpenseListView(LedgerView, ScopedQuerysetMixin, MirroredListMixin, generics.ListCreateAPIView):
    queryset = Expense.objects.all()
    serializer_class = ExpenseSerializer
    mirror_collection = 'expenses'

    def perform_create(self, serializer):
        serializer.save(
            restaurant_id=restaurant_scope(self.request.user),
            created_by=self.request.user.name or None,
        )


class ExpenseDetailView(LedgerView, ScopedQuerysetMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Expense.objects.all()
    serializer_class = ExpenseSerializer
    lookup_url_kwarg = 'expense_id'


class DebtorListView(LedgerView, ScopedQuerysetMixin, MirroredListMixin, generics.ListCreateAPIView):
    queryset = Debtor.objects.all()
    serializer_class = DebtorSerializer
    mirror_collection = 'debtors'

    def get_queryset(self):
        queryset = super().get_queryset()
        paid = self.request.query_params.get('paid')
        if paid is not None:
            queryset = queryset.filter(paid=paid.lower() in ('1', 'true', 'yes'))
        return queryset


class DebtorDetailView(LedgerView, ScopedQuerysetMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Debtor.objects.all()
    serializer_class = DebtorSerializer
    lookup_url_kwarg = 'debtor_id'


class DebtorMarkPaidView(LedgerView, APIView):
    @extend_schema(
        summary="Mark a debt as paid",
        request=None,
        responses={200: DebtorSerializer}
    )
    def post(self, request, debtor_id):
        debtor = get_object_or_404(scoped(Debtor.objects.all(), request.user), id=debtor_id)

        if debtor.paid:
            return Response({
                'error': 'Debt is already paid'
            }, status=status.HTTP_400_BAD_REQUEST)

        debtor.paid = True
        debtor.paid_at = timezone.now()
        debtor.save(update_fields=['paid', 'paid_at'])
        return Response(DebtorSerializer(debtor).data, status=status.HTTP_200_OK)
