"""
Management command to seed the database with sample catalog data.

Generates:
- Household-goods categories in display order
- Products with retail prices, some discounted, sizes and ratings

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from catalog.models import Category, Product, Status


CATEGORY_TEMPLATES = {
    'Cleaning': [
        'All-Purpose Cleaner', 'Glass Cleaner', 'Floor Cleaner', 'Bathroom Spray',
        'Kitchen Degreaser', 'Toilet Gel', 'Dish Soap',
    ],
    'Laundry': [
        'Washing Powder', 'Liquid Detergent', 'Fabric Softener', 'Stain Remover',
        'Bleach', 'Laundry Capsules',
    ],
    'Personal Hygiene': [
        'Liquid Soap', 'Shampoo', 'Shower Gel', 'Hand Sanitizer', 'Toothpaste',
        'Wet Wipes',
    ],
    'Home Care': [
        'Air Freshener', 'Trash Bags', 'Sponges Set', 'Microfiber Cloths',
        'Rubber Gloves', 'Paper Towels',
    ],
}

SIZES = ['250ml', '500ml', '750ml', '1L', '3L', '1kg', '3kg', '5kg']
ADJECTIVES = ['Premium', 'Fresh', 'Eco', 'Ultra', 'Classic', 'Gentle', 'Lemon', 'Lavender']


class Command(BaseCommand):
    help = 'Seed the database with sample categories and products'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=200,
            help='Number of products to create (default: 200)',
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for reproducible data',
        )

    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(options['seed'])

        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            categories = self._create_categories()
            self._create_products(options['products'], categories)

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear all existing data."""
        from orders.models import OrderItem, Order

        OrderItem.objects.all().delete()
        Order.objects.all().delete()
        Product.objects.all().delete()
        Category.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_categories(self):
        categories = []
        for position, name in enumerate(CATEGORY_TEMPLATES):
            category, created = Category.objects.get_or_create(
                name=name,
                defaults={'sort_order': position},
            )
            categories.append(category)
            if created:
                self.stdout.write(f'  Created category: {name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(categories)} categories'))
        return categories

    def _create_products(self, count, categories):
        """Create sample products with realistic prices and stock."""
        self.stdout.write(f'Creating {count} products...')
        existing_skus = set(Product.objects.values_list('sku', flat=True))
        now = timezone.now()

        products = []
        for i in range(count):
            category = random.choice(categories)
            base_name = random.choice(CATEGORY_TEMPLATES.get(category.name, ['Product']))
            size = random.choice(SIZES)
            title = f"{random.choice(ADJECTIVES)} {base_name} {size}"

            sku = f"SKU-{i + 1:05d}"
            if sku in existing_skus:
                continue

            # Prices between 8 000 and 150 000 so'm, rounded to 500
            retail_price = random.randint(16, 300) * 500
            discount_active = random.random() < 0.3
            discount_price = None
            if discount_active:
                discount_price = int(retail_price * random.uniform(0.6, 0.95)) // 500 * 500

            products.append(Product(
                title=title,
                description=f"{base_name} for everyday household use.",
                category=category,
                sku=sku,
                retail_price=retail_price,
                wholesale_price=int(retail_price * 0.8),
                discount_price=discount_price,
                discount_active=discount_active,
                stock=random.choice([0, random.randint(1, 5), random.randint(6, 200)]),
                images=[],
                status=Status.ACTIVE if random.random() > 0.05 else Status.INACTIVE,
                rating=round(random.uniform(3, 5), 1),
                size=size,
            ))

            if (i + 1) % 100 == 0:
                self.stdout.write(f'  Prepared {i + 1} products...')

        Product.objects.bulk_create(products, ignore_conflicts=True)

        # created_at is auto_now_add; spread it so "new" badges and sorting vary
        for product in Product.objects.filter(sku__in=[p.sku for p in products]):
            product.created_at = now - timedelta(days=random.randint(0, 60))
            product.save(update_fields=['created_at'])

        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
