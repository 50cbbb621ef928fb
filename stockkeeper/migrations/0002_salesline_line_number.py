"""
Number sales lines within their transaction.

Existing lines are numbered 1..n in pk order.
"""

from django.db import migrations, models


def number_existing_lines(apps, schema_editor):
    SalesLine = apps.get_model('stockkeeper', 'SalesLine')

    current_transaction = None
    number = 0
    for line in SalesLine.objects.order_by('sales_transaction_id', 'pk'):
        if line.sales_transaction_id != current_transaction:
            current_transaction = line.sales_transaction_id
            number = 0
        number += 1
        SalesLine.objects.filter(pk=line.pk).update(line_number=number)


class Migration(migrations.Migration):

    dependencies = [
        ('stockkeeper', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='salesline',
            name='line_number',
            field=models.PositiveIntegerField(help_text='Sequência dentro da transação, a partir de 1.', null=True, verbose_name='Nº do Item'),
        ),
        migrations.RunPython(number_existing_lines, migrations.RunPython.noop),
    ]
