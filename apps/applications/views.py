from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema

from apps.accounts.models import User

from .models import Application, ApplicationStatus
from .permissions import IsApplicationMemberOrStaff, IsStaffRole
from .serializers import (
    AddMemberSerializer,
    ApplicationCreateSerializer,
    ApplicationEventSerializer,
    ApplicationListSerializer,
    ApplicationMemberSerializer,
    ApplicationSerializer,
    LeaseSignatureSerializer,
    PaymentPlanSerializer,
    PaymentSerializer,
    PaymentStatusSerializer,
    RecordPaymentSerializer,
    TransitionErrorSerializer,
    TransitionRequestSerializer,
)

from apps.applications.services import (
    acknowledge_membership,
    add_member,
    apply_transition,
    create_application,
    get_application_ledger,
    get_application_members,
    get_application_payments,
    list_applications_for_user,
    record_payment,
    record_signature,
    role_for_user,
    set_payment_plan,
    update_payment_status,
    # Exceptions
    InsufficientPermissionsError,
    InvalidPaymentPlanError,
    MembershipClosedError,
    NotMemberError,
    PaymentNotFoundError,
    PlanLockedError,
    SigningClosedError,
    StaleApplicationStateError,
    TransitionRejectedError,
    UnknownPaymentKindError,
)


class ApplicationPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _conflict(error, reason, message):
    return Response(
        {'error': error, 'reason': reason, 'message': message},
        status=status.HTTP_409_CONFLICT,
    )


class ApplicationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Rental applications and their lease lifecycle.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Applications the user belongs to (staff see all)
    create: Start a draft application
    retrieve: Application detail with the actions available now
    """

    queryset = Application.objects.select_related('created_by').prefetch_related('members__user')
    serializer_class = ApplicationSerializer
    permission_classes = [IsAuthenticated, IsApplicationMemberOrStaff]
    pagination_class = ApplicationPagination

    def get_queryset(self):
        if self.action == 'list':
            return list_applications_for_user(
                user=self.request.user,
                status=self.request.query_params.get('status'),
            )
        return super().get_queryset()

    def get_serializer_class(self):
        if self.action == 'list':
            return ApplicationListSerializer
        elif self.action == 'create':
            return ApplicationCreateSerializer
        return ApplicationSerializer

    @extend_schema(
        parameters=[
            OpenApiParameter('status', OpenApiTypes.STR, enum=ApplicationStatus.values),
        ],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=ApplicationCreateSerializer, responses={201: ApplicationSerializer})
    def create(self, request, *args, **kwargs):
        """Create a draft application; the creator becomes primary applicant."""
        serializer = ApplicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        application = create_application(
            user=request.user,
            property_label=serializer.validated_data.get('property_label', ''),
            move_in_date=serializer.validated_data.get('move_in_date'),
            upfronts=serializer.validated_data.get('upfronts'),
        )

        output_serializer = ApplicationSerializer(application, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=TransitionRequestSerializer,
        responses={200: ApplicationSerializer, 409: TransitionErrorSerializer},
        description="Request a lifecycle action. Refused actions return 409 with a reason code.",
    )
    @action(detail=True, methods=['post'])
    def transitions(self, request, pk=None):
        """Apply a lifecycle action as the requesting user."""
        application = self.get_object()
        serializer = TransitionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            application = apply_transition(
                application_id=application.id,
                action=serializer.validated_data['action'],
                role=role_for_user(request.user),
                actor=request.user,
                terms=serializer.validated_data.get('terms'),
            )
        except TransitionRejectedError as e:
            return _conflict('transition_rejected', e.reason, e.message)
        except StaleApplicationStateError as e:
            return _conflict('stale_state', 'stale_state', str(e))

        output_serializer = ApplicationSerializer(application, context={'request': request})
        return Response(output_serializer.data)

    @extend_schema(request=PaymentPlanSerializer, responses={200: ApplicationSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStaffRole])
    def plan(self, request, pk=None):
        """Set the lease payment plan (admin/manager only)."""
        application = self.get_object()
        serializer = PaymentPlanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            application = set_payment_plan(
                application_id=application.id,
                user=request.user,
                **serializer.validated_data
            )
        except InvalidPaymentPlanError as e:
            return Response({'error': e.code, 'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PlanLockedError as e:
            return Response({'error': 'plan_locked', 'message': str(e)}, status=status.HTTP_409_CONFLICT)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        output_serializer = ApplicationSerializer(application, context={'request': request})
        return Response(output_serializer.data)

    @extend_schema(
        responses={200: OpenApiTypes.OBJECT},
        description="Charges with posted/pending/remaining cents, due windows and countersign progress.",
    )
    @action(detail=True, methods=['get'])
    def ledger(self, request, pk=None):
        """Full payment breakdown."""
        application = self.get_object()
        return Response(get_application_ledger(application=application))

    @extend_schema(
        request=RecordPaymentSerializer,
        responses={200: PaymentSerializer(many=True), 201: PaymentSerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def payments(self, request, pk=None):
        """List payment history, or record a payment (staff only)."""
        application = self.get_object()

        if request.method == 'GET':
            payments = get_application_payments(application_id=application.id)
            return Response(PaymentSerializer(payments, many=True).data)

        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = record_payment(
                application_id=application.id,
                user=request.user,
                **serializer.validated_data
            )
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except UnknownPaymentKindError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: ApplicationMemberSerializer})
    @action(detail=True, methods=['post'])
    def acknowledge(self, request, pk=None):
        """Acknowledge the application as a household member."""
        application = self.get_object()
        try:
            member = acknowledge_membership(application_id=application.id, user=request.user)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(ApplicationMemberSerializer(member).data)

    @extend_schema(
        request=AddMemberSerializer,
        responses={200: ApplicationMemberSerializer(many=True), 201: ApplicationMemberSerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def members(self, request, pk=None):
        """List household members, or add a co-applicant by email."""
        application = self.get_object()

        if request.method == 'GET':
            members = get_application_members(application_id=application.id)
            return Response(ApplicationMemberSerializer(members, many=True).data)

        serializer = AddMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = User.objects.get(email__iexact=serializer.validated_data['email'])
        except User.DoesNotExist:
            return Response({'error': 'No account with this email'}, status=status.HTTP_404_NOT_FOUND)

        try:
            member = add_member(application_id=application.id, user=user, added_by=request.user)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except MembershipClosedError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(ApplicationMemberSerializer(member).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={201: LeaseSignatureSerializer, 200: LeaseSignatureSerializer})
    @action(detail=True, methods=['post'])
    def signatures(self, request, pk=None):
        """Sign the lease as the requesting user."""
        application = self.get_object()
        try:
            signature, created = record_signature(application_id=application.id, user=request.user)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except SigningClosedError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(
            LeaseSignatureSerializer(signature).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(responses={200: ApplicationEventSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def timeline(self, request, pk=None):
        """Append-only history of the application."""
        application = self.get_object()
        events = application.timeline.order_by('at', 'id')
        return Response(ApplicationEventSerializer(events, many=True).data)


@extend_schema(
    request=PaymentStatusSerializer,
    responses={200: PaymentSerializer},
    description="Update a payment's processor status (staff only).",
    tags=['applications'],
)
@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsStaffRole])
def payment_status(request, payment_id):
    """Move a payment to a new processor status."""
    serializer = PaymentStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        payment = update_payment_status(
            payment_id=payment_id,
            status=serializer.validated_data['status'],
            user=request.user,
        )
    except PaymentNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response(PaymentSerializer(payment).data)
