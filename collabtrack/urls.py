from django.urls import path

from collaborations.api import api

urlpatterns = [
    path("api/v1/", api.urls),
]
