from rest_framework.permissions import BasePermission
from .services import has_company_access


class HasCompanyAccess(BasePermission):
    message = "An active company membership is required."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and has_company_access(request.user)
        )
