from django.urls import path
from . import views

app_name = "media"

urlpatterns = [
    path("", views.MediaListView.as_view(), name="media-list"),
    path("<uuid:pk>/", views.MediaDetailView.as_view(), name="media-detail"),
]
