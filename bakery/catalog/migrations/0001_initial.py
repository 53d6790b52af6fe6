import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('stock_quantity', models.PositiveIntegerField(default=0)),
                ('image_url', models.URLField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'products',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['owner', 'name'], name='idx_product_owner_name')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(unit_price__gte=0), name='product_unit_price_non_negative'),
                    models.CheckConstraint(condition=models.Q(stock_quantity__gte=0), name='product_stock_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Ingredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('unit', models.CharField(max_length=50)),
                ('stock', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=10)),
                ('min_stock_level', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ingredients', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'ingredients',
                'ordering': ['name'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(stock__gte=0), name='ingredient_stock_non_negative'),
                    models.CheckConstraint(condition=models.Q(min_stock_level__gte=0), name='ingredient_min_stock_non_negative'),
                ],
            },
        ),
    ]
