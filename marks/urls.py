# marks/urls.py - Marks routes, mounted under /student/

from django.urls import path
from . import views

app_name = 'marks'

urlpatterns = [
    path('<str:student_id>/marks/', views.StudentMarksView.as_view(), name='list'),
    path('<str:student_id>/marks/save/', views.MarkSaveView.as_view(), name='save'),
    path('<str:student_id>/marks/<str:mark_id>/delete/', views.MarkDeleteView.as_view(), name='delete'),
]
