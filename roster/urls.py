# roster/urls.py - Directory at the root, marks under /student/<id>/marks/

from django.urls import path, include

urlpatterns = [
    # Student directory and editor
    path('', include('students.urls')),

    # Per-student marks view
    path('student/', include('marks.urls')),
]
