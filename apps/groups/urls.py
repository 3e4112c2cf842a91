from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'groups', views.GroupViewSet, basename='group')
router.register(r'members', views.MemberViewSet, basename='member')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/                            - List groups (?search=)
    # POST   /api/groups/                            - Create group
    # GET    /api/groups/{id}/                       - Group details
    # PUT    /api/groups/{id}/                       - Update group
    # PATCH  /api/groups/{id}/                       - Partial update
    # DELETE /api/groups/{id}/                       - Delete group

    # Custom group actions
    # GET    /api/groups/{id}/members/               - List members
    # POST   /api/groups/{id}/members/               - Add member
    # DELETE /api/groups/{id}/members/{member_id}/   - Remove member
    # GET    /api/groups/{id}/expenses/              - Group expenses
    # GET    /api/groups/{id}/balances/              - Net balances + settlements
    # GET    /api/groups/{id}/summary/               - Paid / owed per member
    # GET    /api/groups/{id}/stats/                 - Group statistics
    # POST   /api/groups/{id}/calculate-split/       - Equal split preview

    # Member ViewSet routes
    # GET    /api/members/                           - List members
    # POST   /api/members/                           - Register member
    # GET    /api/members/{id}/                      - Member details
    # GET    /api/members/{id}/groups/               - Member's groups

    # Include router URLs
    path('', include(router.urls)),
]
