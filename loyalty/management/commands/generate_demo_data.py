"""
Custom management command to generate demo data.
"""

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from catalog.models import Category, Product
from core.exceptions import PointOfSaleError
from core.money import to_money
from loyalty.models import Customer
from loyalty.services import LoyaltyService
from promotions.models import CampaignType, DiscountCode, DiscountType
from promotions.services import CampaignService, DiscountCodeService
from sales.models import PaymentMethod
from sales.services import SaleRequest, SaleService

MENU = {
    "Coffee": [("Espresso", "2.50"), ("Americano", "3.00"), ("Cappuccino", "3.80"), ("Latte", "4.20")],
    "Tea": [("Green Tea", "2.80"), ("Chai Latte", "4.00")],
    "Pastries": [("Croissant", "2.90"), ("Blueberry Muffin", "3.20"), ("Cinnamon Roll", "3.50")],
    "Sandwiches": [("Ham & Cheese", "6.50"), ("Caprese Panini", "7.20")],
}

FIRST_NAMES = ["Anna", "Ben", "Chloe", "Dmytro", "Elif", "Farid", "Greta", "Hugo", "Iris", "Jonas"]


class Command(BaseCommand):
    help = "Generates demo data for the café point of sale"

    def add_arguments(self, parser):
        parser.add_argument("--customers", type=int, default=20, help="Number of customers to generate")
        parser.add_argument("--sales", type=int, default=100, help="Number of sales to generate")

    def handle(self, *args, **options):
        num_customers = options["customers"]
        num_sales = options["sales"]

        self.stdout.write(f" Starting demo data generation (Customers: {num_customers}, Sales: {num_sales})...")

        products = self._create_menu()
        customers = self._create_customers(num_customers)
        self._create_promotions(products)

        service = SaleService()
        created = 0
        for _ in range(num_sales):
            basket = random.sample(products, k=random.randint(1, 3))
            customer = random.choice(customers + [None])
            payment_method = random.choice(PaymentMethod.values)
            request = SaleRequest(
                items=tuple((product.pk, random.randint(1, 2)) for product in basket),
                payment_method=payment_method,
                customer_id=customer.pk if customer else None,
                cash_received=Decimal("50.00") if payment_method == PaymentMethod.CASH else None,
            )
            try:
                service.checkout(request)
            except PointOfSaleError as e:
                self.stdout.write(self.style.WARNING(f" Skipped a sale: {e.message}"))
                continue
            created += 1

        self.stdout.write(
            self.style.SUCCESS(
                f" Done! Created {len(customers)} customers, {len(products)} products and {created} sales."
            )
        )

    def _create_menu(self):
        products = []
        for category_name, items in MENU.items():
            category, _ = Category.objects.get_or_create(name=category_name)
            for name, price in items:
                product, _ = Product.objects.get_or_create(
                    name=name,
                    category=category,
                    defaults={
                        "price": Decimal(price),
                        "cost": to_money(Decimal(price) * Decimal("0.35")),
                        "stock": 100,
                    },
                )
                products.append(product)
        return products

    def _create_customers(self, count):
        loyalty = LoyaltyService()
        customers = []
        for i in range(1, count + 1):
            unique_id = f"{i}_{random.randint(1000, 9999)}"
            customer = Customer.objects.create(
                name=f"{random.choice(FIRST_NAMES)} {unique_id}",
                phone=f"+380{random.randint(100000000, 999999999)}",
                email=f"customer_{unique_id}@example.com",
            )
            loyalty.enroll(customer)
            customers.append(customer)
        return customers

    def _create_promotions(self, products):
        now = timezone.now()
        codes = DiscountCodeService()
        if DiscountCode.objects.filter(code="WELCOME10").exists():
            return
        codes.create_code(
            code="WELCOME10",
            name="Ten percent off",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            usage_limit=100,
            expires_at=now + timedelta(days=30),
        )
        codes.create_bulk_codes("FLYER", 5, discount_type=DiscountType.FIXED, discount_value=Decimal("2.00"))

        campaigns = CampaignService()
        pastries = [product for product in products if product.category.name == "Pastries"]
        morning = campaigns.create_campaign(
            name="Morning pastry deal",
            campaign_type=CampaignType.PRODUCT_DISCOUNT,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=14),
            products=pastries,
        )
        campaigns.activate(morning)
