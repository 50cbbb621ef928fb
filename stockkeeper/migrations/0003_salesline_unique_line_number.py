"""
Make line_number required and unique per transaction.
"""

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('stockkeeper', '0002_salesline_line_number'),
    ]

    operations = [
        migrations.AlterField(
            model_name='salesline',
            name='line_number',
            field=models.PositiveIntegerField(help_text='Sequência dentro da transação, a partir de 1.', verbose_name='Nº do Item'),
        ),
        migrations.AddConstraint(
            model_name='salesline',
            constraint=models.UniqueConstraint(fields=('sales_transaction_id', 'line_number'), name='unique_sales_line_number'),
        ),
    ]
