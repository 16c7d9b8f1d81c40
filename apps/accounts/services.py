from django.contrib.auth import authenticate, get_user_model
from rest_framework.exceptions import NotFound, PermissionDenied

from apps.branches.models import Branch

User = get_user_model()


class AuthService:
    """
    Service for credential checks
    """

    @staticmethod
    def login(email, password):
        """
        Return the active user for the given credentials
        Raises ValueError with a user facing message otherwise
        """
        user = authenticate(email=User.objects.normalize_email(email), password=password)

        if user is None:
            # authenticate() also returns None for inactive users
            existing = User.objects.filter(email__iexact=email).first()
            if existing is not None and not existing.is_active and existing.check_password(password):
                raise ValueError('Account is deactivated. Please contact administrator.')
            raise ValueError('Invalid email or password')

        return user

    @staticmethod
    def change_password(user, current_password, new_password):
        if not user.check_password(current_password):
            raise ValueError('Current password is incorrect')

        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])
        return user


class BranchAccessService:
    """
    Resolves which branch a request acts on
    """

    @staticmethod
    def resolve_branch(user, branch_id=None):
        """
        Administrators may act on any branch; everyone else only on their
        own. Without an explicit branch_id the user's home branch is used.
        """
        if branch_id in (None, ''):
            if user.branch_id is None:
                raise PermissionDenied('No branch is assigned to this user')
            return user.branch

        try:
            branch = Branch.objects.get(pk=branch_id)
        except (Branch.DoesNotExist, ValueError, TypeError):
            raise NotFound('Branch not found')

        if not user.is_admin and branch.pk != user.branch_id:
            raise PermissionDenied('You do not have access to this branch')

        return branch
