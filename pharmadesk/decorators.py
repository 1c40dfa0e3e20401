from functools import wraps

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse


def member_required(view_func):
    """Signed-in user with a member profile in an active organization."""
    @wraps(view_func)
    @login_required
    def wrapper(request, *args, **kwargs):
        if getattr(request, 'member', None) is None:
            return HttpResponse('Permission denied', status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def admin_required(view_func):
    @wraps(view_func)
    @member_required
    def wrapper(request, *args, **kwargs):
        if not request.member.is_admin:
            return HttpResponse('Permission denied', status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def api_member_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)
        if getattr(request, 'member', None) is None:
            return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def api_admin_required(view_func):
    @wraps(view_func)
    @api_member_required
    def wrapper(request, *args, **kwargs):
        if not request.member.is_admin:
            return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
        return view_func(request, *args, **kwargs)
    return wrapper
