from django.http import JsonResponse


def error_500(request):
    return JsonResponse({'success': False, 'error': 'Internal server error'}, status=500)


def error_404(request, exception):
    return JsonResponse({'success': False, 'error': 'Not found', 'code': 404}, status=404)
