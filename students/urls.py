# students/urls.py - Directory and editor routes

from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    path('', views.StudentListView.as_view(), name='list'),
    path('students/create/', views.StudentCreateView.as_view(), name='create'),

    # Parameterized routes
    path('students/<str:pk>/edit/', views.StudentUpdateView.as_view(), name='update'),
    path('students/<str:pk>/delete/', views.StudentDeleteView.as_view(), name='delete'),
]
