from django.db import models
from apps.utils.models import TimestampedModel


class Warehouse(TimestampedModel):
    class WarehouseType(models.TextChoices):
        MAIN = "MAIN", "Main"
        BRANCH = "BRANCH", "Branch"
        STORAGE = "STORAGE", "Storage"
        TRANSIT = "TRANSIT", "Transit"

    name = models.CharField(max_length=100)
    code = models.CharField(max_length=50, unique=True, db_index=True)
    type = models.CharField(max_length=20, choices=WarehouseType.choices, default=WarehouseType.MAIN)
    description = models.TextField(blank=True)

    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"
