# permissions/api/urls.py

from django.urls import path

from permissions.api.views import MyPermissionsView, RoleListView

urlpatterns = [
    path("", RoleListView.as_view(), name="roles"),
    path("me/", MyPermissionsView.as_view(), name="roles-me"),
]
