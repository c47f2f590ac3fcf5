from django.urls import path

from . import views

urlpatterns = [
    path('<int:pk>/test-send/', views.test_send, name='scheduled_message_test_send'),
    path('data-queries/', views.data_query_list, name='data_query_list'),
    path('data-queries/<str:key>/', views.data_query_detail, name='data_query_detail'),
    path('schedule-preview/', views.schedule_preview, name='schedule_preview'),
]
