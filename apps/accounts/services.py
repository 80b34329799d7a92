from .models import CompanyMembership


def active_memberships(user):
    if not user or not user.is_authenticated:
        return CompanyMembership.objects.none()
    return CompanyMembership.objects.filter(
        user=user,
        is_active=True,
        company__is_active=True,
    ).select_related('company')


def has_company_access(user) -> bool:
    """
    Derived on every call from the membership table; never cached on the
    client or the session.
    """
    if user and user.is_authenticated and user.is_superuser:
        return True
    return active_memberships(user).exists()
