from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'expenses'

# Router for ViewSets
router = SimpleRouter()
router.register(r'', views.ExpenseViewSet, basename='expense')

urlpatterns = [
    # Expense ViewSet routes
    # GET    /api/expenses/                    - List (?group= ?member= ?search= ?start_date= ?end_date=)
    # POST   /api/expenses/                    - Record expense
    # GET    /api/expenses/{id}/               - Expense details
    # PUT    /api/expenses/{id}/               - Update expense
    # PATCH  /api/expenses/{id}/               - Partial update
    # DELETE /api/expenses/{id}/               - Delete expense
    # POST   /api/expenses/calculate-split/    - Preview a split

    # Include router URLs
    path('', include(router.urls)),
]
