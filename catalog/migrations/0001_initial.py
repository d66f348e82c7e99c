import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Category display name', max_length=100)),
                ('slug', models.SlugField(blank=True, help_text='Unique URL slug, generated from the name when blank', max_length=120, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('image', models.URLField(blank=True, default='')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='active', max_length=10)),
                ('sort_order', models.IntegerField(default=0, help_text='Display position, lowest first')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Category',
                'verbose_name_plural': 'Categories',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(db_index=True, help_text='Product title for display and search', max_length=200)),
                ('description', models.TextField(blank=True, default='', help_text='Optional product description')),
                ('sku', models.CharField(help_text='Stock keeping unit', max_length=64, unique=True)),
                ('retail_price', models.PositiveIntegerField(help_text="Retail price in so'm", validators=[django.core.validators.MinValueValidator(1)])),
                ('wholesale_price', models.PositiveIntegerField(default=0, help_text="Wholesale price in so'm (back-office only)")),
                ('discount_price', models.PositiveIntegerField(blank=True, help_text="Discounted price in so'm", null=True)),
                ('discount_active', models.BooleanField(default=False, help_text='Whether discount_price is currently charged')),
                ('stock', models.PositiveIntegerField(default=0, help_text='Units available for sale')),
                ('images', models.JSONField(blank=True, default=list, help_text='Ordered list of image URLs')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='active', max_length=10)),
                ('rating', models.FloatField(default=0, help_text='Average customer rating, 0-5', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ('size', models.CharField(blank=True, default='', help_text="Size or volume tag, e.g. '500ml'", max_length=32)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, help_text='Product category', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='catalog.category')),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['category', 'status'], name='product_category_status_idx'),
                    models.Index(fields=['status', 'created_at'], name='product_status_created_idx'),
                ],
            },
        ),
    ]
