# apps/catalog/models.py
import uuid
from django.db import models
from django.utils.text import slugify
from apps.utils.models import TimestampedModel


def unique_slug(model, name, pk=None):
    base_slug = slugify(name) or "item"
    slug_candidate = base_slug
    counter = 1
    while model.objects.filter(slug=slug_candidate).exclude(pk=pk).exists():
        slug_candidate = f"{base_slug}-{counter}"
        counter += 1
    return slug_candidate


class Category(models.Model):
    """
    Product category tree (e.g. Electronics > Audio > Headphones)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True, blank=True, db_index=True)
    description = models.TextField(blank=True)
    parent = models.ForeignKey(
        'self',
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name='subcategories',
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ["sort_order", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["parent", "name"],
                name="uniq_category_per_parent_name",
            )
        ]

    def __str__(self):
        return self.name

    @property
    def level(self):
        depth, node = 0, self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Category, self.name, pk=self.pk)
        super().save(*args, **kwargs)


class Brand(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(unique=True, blank=True, db_index=True)
    website = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Brand, self.name, pk=self.pk)
        super().save(*args, **kwargs)


class Supplier(TimestampedModel):
    name = models.CharField(max_length=255, unique=True)
    code = models.CharField(max_length=50, unique=True, db_index=True)
    contact_name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    payment_terms = models.CharField(max_length=100, blank=True)
    lead_time_days = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class Product(TimestampedModel):
    """
    Sellable catalogue item. Stock lives in apps.inventory, one record per
    (product, variant, warehouse); the thresholds below drive stock alerts.
    """
    class ProductType(models.TextChoices):
        SIMPLE = "SIMPLE", "Simple"
        VARIABLE = "VARIABLE", "Variable"
        BUNDLE = "BUNDLE", "Bundle"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        INACTIVE = "INACTIVE", "Inactive"
        DRAFT = "DRAFT", "Draft"
        ARCHIVED = "ARCHIVED", "Archived"

    sku = models.CharField(max_length=100, unique=True, db_index=True)
    barcode = models.CharField(max_length=64, blank=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    category = models.ForeignKey(
        Category, null=True, blank=True, on_delete=models.SET_NULL, related_name='products'
    )
    brand = models.ForeignKey(
        Brand, null=True, blank=True, on_delete=models.SET_NULL, related_name='products'
    )
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True, on_delete=models.SET_NULL, related_name='products'
    )

    type = models.CharField(max_length=20, choices=ProductType.choices, default=ProductType.SIMPLE)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)

    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    primary_image = models.URLField(blank=True)

    # Stock thresholds
    min_stock_level = models.PositiveIntegerField(default=0)
    reorder_point = models.PositiveIntegerField(null=True, blank=True)
    max_stock_level = models.PositiveIntegerField(null=True, blank=True)

    track_inventory = models.BooleanField(default=True)
    sell_without_stock = models.BooleanField(default=False)

    attributes = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status", "category"], name="catalog_prod_status_cat_idx"),
            models.Index(fields=["status", "brand"], name="catalog_prod_status_brand_idx"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"


class ProductVariant(TimestampedModel):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    sku = models.CharField(max_length=100, unique=True, db_index=True)
    barcode = models.CharField(max_length=64, blank=True)
    name = models.CharField(max_length=255)
    attributes = models.JSONField(default=dict, blank=True)

    cost_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    selling_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Override the product's thresholds when set
    min_stock_level = models.PositiveIntegerField(null=True, blank=True)
    reorder_point = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["product", "name"]

    def __str__(self):
        return f"{self.sku} - {self.name}"
