from django.db import migrations

RANGE_IDS = ["0-10", "10-50", "50-100", "100-500", "500+"]


def seed_ranges(apps, schema_editor):
    PricingRangeSetting = apps.get_model("catalog", "PricingRangeSetting")
    for range_id in RANGE_IDS:
        PricingRangeSetting.objects.get_or_create(range_id=range_id, defaults={"percentage": 0})


def unseed_ranges(apps, schema_editor):
    PricingRangeSetting = apps.get_model("catalog", "PricingRangeSetting")
    PricingRangeSetting.objects.filter(range_id__in=RANGE_IDS).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_ranges, unseed_ranges),
    ]
