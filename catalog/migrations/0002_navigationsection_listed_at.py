"""
Migration: Track navigation listing separately from category refreshes.

NavigationSection.last_refreshed_at keeps marking the section's category
refresh; listed_at records the navigation refresh that last returned the
section.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="navigationsection",
            name="listed_at",
            field=models.DateTimeField(blank=True, db_index=True, null=True),
        ),
    ]
