from django.urls import path
from .views import (
    StockView,
    StockMovementView,
    StockTransferView,
    StockAlertView,
)

urlpatterns = [
    path('stock/', StockView.as_view(), name='inventory-stock'),
    path('stock/movements/', StockMovementView.as_view(), name='inventory-movements'),
    path('stock/transfers/', StockTransferView.as_view(), name='inventory-transfers'),
    path('stock/alerts/', StockAlertView.as_view(), name='inventory-alerts'),
]
