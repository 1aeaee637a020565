from django.urls import path
from . import views

urlpatterns = [
    path('initiate/', views.InitiateRegistrationView.as_view(), name='registration-initiate'),
    path('finalize/', views.FinalizeRegistrationView.as_view(), name='registration-finalize'),
]
