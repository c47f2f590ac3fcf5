from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('messages/', include('scheduled_messages.urls')),
    path('executions/', include('executions.urls')),
]

handler500 = 'core.views.error_500'
handler404 = 'core.views.error_404'
