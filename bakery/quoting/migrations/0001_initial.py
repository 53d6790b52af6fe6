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
            name='QuoteOption',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('size', 'Size'), ('flavor', 'Flavor'), ('filling', 'Filling'), ('covering', 'Covering'), ('decoration', 'Decoration'), ('special', 'Special option')], max_length=20)),
                ('name', models.CharField(max_length=200)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quote_options', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quote_options',
                'ordering': ['category', 'price', 'name'],
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'category', 'name'), name='unique_quote_option_per_owner'),
                    models.CheckConstraint(condition=models.Q(price__gte=0), name='quote_option_price_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QuoteCategoryRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('size', 'Size'), ('flavor', 'Flavor'), ('filling', 'Filling'), ('covering', 'Covering'), ('decoration', 'Decoration'), ('special', 'Special option')], max_length=20)),
                ('is_required', models.BooleanField(default=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='quote_rules', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quote_category_rules',
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'category'), name='unique_quote_rule_per_owner'),
                ],
            },
        ),
    ]
