"""
Initial migration for Stockkeeper models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create positions, movements, adjustments, sales lines and returns."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockPosition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(verbose_name='ID do Produto')),
                ('store_id', models.PositiveBigIntegerField(verbose_name='ID da Loja')),
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='Quantidade')),
                ('average_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15, verbose_name='Custo Médio')),
                ('last_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15, verbose_name='Último Custo')),
                ('minimum_threshold', models.PositiveIntegerField(default=0, help_text='Apenas informativo: não bloqueia aprovações.', verbose_name='Estoque Mínimo')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Posição de Estoque',
                'verbose_name_plural': 'Posições de Estoque',
                'indexes': [models.Index(fields=['store_id'], name='stk_pos_store_idx')],
                'constraints': [models.UniqueConstraint(fields=('product_id', 'store_id'), name='unique_stock_position')],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.IntegerField(help_text='Positivo = entrada, Negativo = saída', verbose_name='Variação')),
                ('quantity_before', models.IntegerField(verbose_name='Quantidade Anterior')),
                ('quantity_after', models.IntegerField(verbose_name='Quantidade Posterior')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, max_digits=15, null=True, verbose_name='Custo Unitário')),
                ('kind', models.CharField(choices=[('sale', 'Venda'), ('adjustment_increase', 'Ajuste (entrada)'), ('adjustment_decrease', 'Ajuste (saída)'), ('return_restock', 'Devolução (reestoque)')], max_length=30, verbose_name='Tipo')),
                ('reference_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='ID da Referência')),
                ('note', models.CharField(blank=True, default='', max_length=255, verbose_name='Observação')),
                ('occurred_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
                ('position', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockkeeper.stockposition', verbose_name='Posição')),
                ('reference_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='contenttypes.contenttype', verbose_name='Tipo de Referência')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['occurred_at', 'pk'],
                'indexes': [
                    models.Index(fields=['position', 'occurred_at'], name='stk_mov_pos_time_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='stk_mov_ref_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=30, unique=True, verbose_name='Número')),
                ('store_id', models.PositiveBigIntegerField(db_index=True, verbose_name='ID da Loja')),
                ('type', models.CharField(choices=[('increase', 'Entrada'), ('decrease', 'Saída')], max_length=20, verbose_name='Tipo')),
                ('reason', models.CharField(choices=[('stock_opname', 'Inventário físico'), ('damaged_goods', 'Avaria'), ('expired_goods', 'Vencimento'), ('lost_goods', 'Extravio'), ('found_goods', 'Mercadoria encontrada'), ('correction', 'Correção'), ('supplier_return', 'Devolução ao fornecedor'), ('customer_return', 'Devolução de cliente'), ('other', 'Outro')], max_length=30, verbose_name='Motivo')),
                ('adjustment_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data do Ajuste')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('status', models.CharField(choices=[('draft', 'Rascunho'), ('approved', 'Aprovado'), ('rejected', 'Rejeitado')], db_index=True, default='draft', max_length=20, verbose_name='Status')),
                ('approved_at', models.DateTimeField(blank=True, null=True, verbose_name='Aprovado em')),
                ('total_value_impact', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=18, verbose_name='Impacto em Valor')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Aprovado por')),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
            ],
            options={
                'verbose_name': 'Ajuste de Estoque',
                'verbose_name_plural': 'Ajustes de Estoque',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['store_id', 'adjustment_date'], name='stk_adj_store_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='AdjustmentLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(verbose_name='ID do Produto')),
                ('adjusted_quantity', models.IntegerField(verbose_name='Quantidade Ajustada')),
                ('current_quantity_snapshot', models.PositiveIntegerField(verbose_name='Quantidade no Momento')),
                ('unit_cost_snapshot', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15, verbose_name='Custo Unitário')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('adjustment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockkeeper.stockadjustment', verbose_name='Ajuste')),
            ],
            options={
                'verbose_name': 'Item de Ajuste',
                'verbose_name_plural': 'Itens de Ajuste',
                'ordering': ['pk'],
                'indexes': [models.Index(fields=['adjustment', 'product_id'], name='stk_adjline_prod_idx')],
            },
        ),
        migrations.CreateModel(
            name='SalesLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sales_transaction_id', models.PositiveBigIntegerField(db_index=True, verbose_name='ID da Transação')),
                ('store_id', models.PositiveBigIntegerField(verbose_name='ID da Loja')),
                ('product_id', models.PositiveBigIntegerField(verbose_name='ID do Produto')),
                ('quantity_sold', models.PositiveIntegerField(verbose_name='Quantidade Vendida')),
                ('unit_price_net', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15, verbose_name='Preço Unitário Líquido')),
                ('posted_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Lançado em')),
            ],
            options={
                'verbose_name': 'Item de Venda',
                'verbose_name_plural': 'Itens de Venda',
                'ordering': ['pk'],
            },
        ),
        migrations.CreateModel(
            name='SalesReturn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=30, unique=True, verbose_name='Número')),
                ('sales_transaction_id', models.PositiveBigIntegerField(verbose_name='ID da Transação')),
                ('store_id', models.PositiveBigIntegerField(verbose_name='ID da Loja')),
                ('return_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data da Devolução')),
                ('reason', models.TextField(verbose_name='Motivo')),
                ('status', models.CharField(choices=[('pending', 'Pendente'), ('approved', 'Aprovado'), ('rejected', 'Rejeitado')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('refund_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=15, verbose_name='Valor do Reembolso')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='Processado em')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Processado por')),
            ],
            options={
                'verbose_name': 'Devolução',
                'verbose_name_plural': 'Devoluções',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['sales_transaction_id', 'status'], name='stk_ret_txn_status_idx'),
                    models.Index(fields=['status', 'return_date'], name='stk_ret_status_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReturnLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(verbose_name='ID do Produto')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('condition', models.CharField(choices=[('good', 'Bom estado'), ('damaged', 'Danificado'), ('defective', 'Defeituoso')], default='good', max_length=20, verbose_name='Condição')),
                ('unit_price_net', models.DecimalField(decimal_places=2, max_digits=15, verbose_name='Preço Unitário Líquido')),
                ('refund_amount', models.DecimalField(decimal_places=2, max_digits=15, verbose_name='Reembolso')),
                ('reason', models.TextField(blank=True, default='', verbose_name='Motivo')),
                ('sales_line', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='return_lines', to='stockkeeper.salesline', verbose_name='Item de Venda')),
                ('sales_return', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockkeeper.salesreturn', verbose_name='Devolução')),
            ],
            options={
                'verbose_name': 'Item de Devolução',
                'verbose_name_plural': 'Itens de Devolução',
                'ordering': ['pk'],
                'indexes': [models.Index(fields=['sales_return', 'product_id'], name='stk_retline_prod_idx')],
            },
        ),
    ]
