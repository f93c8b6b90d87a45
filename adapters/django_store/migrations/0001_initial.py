import uuid

from django.db import migrations, models


def _amount(**kwargs):
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LineItemRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("item_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("owner_id", models.UUIDField(help_text="Quotation or change order the item belongs to.")),
                ("kind", models.CharField(choices=[("interior", "Interior"), ("false_ceiling", "False Ceiling"), ("other", "Other")], max_length=20)),
                ("room_type", models.CharField(blank=True, max_length=120, null=True)),
                ("description", models.TextField(blank=True, default="")),
                ("calc", models.CharField(choices=[("SQFT", "Square feet"), ("COUNT", "Count"), ("LSUM", "Lump sum")], default="SQFT", max_length=8)),
                ("item_key", models.CharField(blank=True, max_length=100, null=True)),
                ("item_type", models.CharField(blank=True, max_length=60, null=True)),
                ("length", _amount(blank=True, null=True)),
                ("height", _amount(blank=True, null=True)),
                ("width", _amount(blank=True, null=True)),
                ("quantity", _amount(blank=True, null=True)),
                ("direct_price", _amount(blank=True, null=True)),
                ("build_type", models.CharField(blank=True, max_length=20, null=True)),
                ("material", models.CharField(blank=True, max_length=120, null=True)),
                ("finish", models.CharField(blank=True, max_length=120, null=True)),
                ("hardware", models.CharField(blank=True, max_length=120, null=True)),
                ("rate_auto", _amount(default=0)),
                ("rate_override", _amount(blank=True, null=True)),
                ("is_rate_overridden", models.BooleanField(default=False)),
                ("unit_price", _amount(default=0)),
                ("total_price", _amount(default=0)),
                ("change_type", models.CharField(blank=True, max_length=20, null=True)),
                ("sort_order", models.IntegerField(default=0)),
            ],
            options={
                "db_table": "casa_line_item",
                "ordering": ["sort_order", "id"],
            },
        ),
        migrations.AddIndex(
            model_name="lineitemrecord",
            index=models.Index(fields=["owner_id", "kind"], name="idx_item_owner_kind"),
        ),
    ]
