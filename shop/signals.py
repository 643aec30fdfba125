# shop/signals.py — troca de sessão invalida o cache de papel admin
from django.contrib.auth.signals import user_logged_in, user_logged_out
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .access import forget_all_roles, forget_role
from .models import UserRole


def _session_key(request):
    session = getattr(request, "session", None)
    return getattr(session, "session_key", None)


@receiver(user_logged_in)
def _drop_role_on_login(sender, request, user, **kwargs):
    forget_role(user.pk, _session_key(request))


@receiver(user_logged_out)
def _drop_role_on_logout(sender, request, user, **kwargs):
    if user is not None:
        forget_role(user.pk, _session_key(request))


@receiver(post_save, sender=UserRole)
@receiver(post_delete, sender=UserRole)
def _drop_role_on_change(sender, instance, **kwargs):
    forget_all_roles(instance.user_id)
