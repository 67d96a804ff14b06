from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'applications'

router = DefaultRouter()
router.register(r'', views.ApplicationViewSet, basename='application')

urlpatterns = [
    # Application ViewSet routes
    # GET    /api/applications/                  - List applications
    # POST   /api/applications/                  - Create draft application
    # GET    /api/applications/{id}/             - Detail with allowed actions

    # Lifecycle actions
    # POST   /api/applications/{id}/transitions/ - Apply a lifecycle action
    # POST   /api/applications/{id}/plan/        - Set payment plan (staff)
    # GET    /api/applications/{id}/ledger/      - Payment breakdown
    # GET    /api/applications/{id}/payments/    - Payment history
    # POST   /api/applications/{id}/payments/    - Record payment (staff)
    # GET    /api/applications/{id}/members/     - Household members
    # POST   /api/applications/{id}/members/     - Add co-applicant (primary)
    # POST   /api/applications/{id}/acknowledge/ - Member acknowledgement
    # POST   /api/applications/{id}/signatures/  - Sign the lease
    # GET    /api/applications/{id}/timeline/    - Timeline events

    path('payments/<uuid:payment_id>/', views.payment_status, name='payment-status'),

    path('', include(router.urls)),
]
