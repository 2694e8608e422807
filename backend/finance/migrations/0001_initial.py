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
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("account_type", models.CharField(choices=[("EFECTIVO", "Efectivo"), ("BANCO", "Banco"), ("TARJETA_CREDITO", "Tarjeta de crédito"), ("INVERSION", "Inversión"), ("OTRO", "Otro")], db_column="type", max_length=20)),
                ("balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), editable=False, max_digits=14)),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("color", models.CharField(default="#1890ff", max_length=7)),
                ("currency", models.CharField(choices=[("ARS", "Peso argentino"), ("USD", "Dólar estadounidense")], default="ARS", max_length=3)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="finance_accounts", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-is_active", "-created_at", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "name"), name="uniq_account_name_per_user"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("kind", models.CharField(choices=[("PRODUCTO", "Producto"), ("SERVICIO", "Servicio"), ("GASTO", "Gasto")], db_column="type", max_length=10)),
                ("color", models.CharField(default="#1890ff", max_length=7)),
                ("icon", models.CharField(blank=True, default="", max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="finance_categories", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "categories",
                "ordering": ["-is_active", "kind", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "kind", "name"), name="uniq_category_name_per_user_kind"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Item",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.CharField(blank=True, default="", max_length=1000)),
                ("item_type", models.CharField(choices=[("PRODUCTO", "Producto"), ("SERVICIO", "Servicio"), ("GASTO", "Gasto")], db_column="type", max_length=10)),
                ("price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("stock", models.IntegerField(default=0)),
                ("min_stock", models.IntegerField(default=0)),
                ("unit", models.CharField(default="unidad", max_length=50)),
                ("barcode", models.CharField(blank=True, max_length=100, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("is_recurring", models.BooleanField(default=False)),
                ("frequency", models.CharField(blank=True, choices=[("MENSUAL", "Mensual"), ("TRIMESTRAL", "Trimestral"), ("ANUAL", "Anual")], max_length=10, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="items", to="finance.category")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="finance_items", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-is_active", "item_type", "name"],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("is_active", True)), fields=("user", "name"), name="uniq_active_item_name_per_user"),
                    models.UniqueConstraint(condition=models.Q(("is_active", True), ("barcode__isnull", False)), fields=("user", "barcode"), name="uniq_active_item_barcode_per_user"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("INGRESO", "Ingreso"), ("GASTO", "Gasto"), ("TRANSFERENCIA", "Transferencia")], db_column="type", max_length=15)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("description", models.CharField(max_length=500)),
                ("date", models.DateField()),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="finance.account")),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="finance.category")),
                ("item", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="finance.item")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="finance_transactions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "date"], name="finance_txn_user_date_idx"),
                    models.Index(fields=["account", "date"], name="finance_txn_account_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="transaction_amount_positive"),
                ],
            },
        ),
    ]
