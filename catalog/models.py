"""
Read-only catalog reference used as pricing input.
Products and categories are maintained by the catalog CRUD service.
"""

from django.db import models

from core.models import TimeStampedModel


class Category(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True)

    class Meta:
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name


class Product(TimeStampedModel):
    """
    A sellable item. The core only reads price, category and availability.
    """

    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    stock = models.IntegerField(default=0)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name="products")
    is_available = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.price})"
