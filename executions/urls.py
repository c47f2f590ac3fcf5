from django.urls import path

from . import views

urlpatterns = [
    path('', views.execution_list, name='execution_list'),
]
