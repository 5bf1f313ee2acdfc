import uuid
from decimal import Decimal

from django.db import models


class MenuItem(models.Model):
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	name = models.CharField(max_length=100)
	description = models.TextField(blank=True, default='')
	price = models.DecimalField(max_digits=12, decimal_places=2)
	category = models.CharField(max_length=60, blank=True, default='')
	is_available = models.BooleanField(default=True)
	preparation_time = models.PositiveIntegerField(default=0, help_text='Minutes')

	class Meta:
		ordering = ['category', 'name']

	def __str__(self):
		return self.name


class Table(models.Model):
	STATUS_AVAILABLE = 'available'
	STATUS_OCCUPIED = 'occupied'
	STATUS_CHOICES = [
		(STATUS_AVAILABLE, 'Available'),
		(STATUS_OCCUPIED, 'Occupied'),
	]
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	number = models.PositiveIntegerField()
	seats = models.PositiveIntegerField(default=2)
	# status and current_order are a cached projection of open orders,
	# written only by orders.projection.TableStateProjector
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
	current_order = models.ForeignKey(
		'Order', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
	)

	class Meta:
		ordering = ['number']
		constraints = [
			models.UniqueConstraint(fields=['restaurant_id', 'number'], name='unique_table_number_per_restaurant'),
		]

	def __str__(self):
		return f"Table {self.number}"


class Order(models.Model):
	STATUS_OPEN = 'open'
	STATUS_CLOSED = 'closed'
	STATUS_CANCELLED = 'cancelled'
	STATUS_CHOICES = [
		(STATUS_OPEN, 'Open'),
		(STATUS_CLOSED, 'Closed'),
		(STATUS_CANCELLED, 'Cancelled'),
	]
	PAYMENT_UNPAID = 'unpaid'
	PAYMENT_PAID = 'paid'
	PAYMENT_STATUS_CHOICES = [
		(PAYMENT_UNPAID, 'Unpaid'),
		(PAYMENT_PAID, 'Paid'),
	]
	METHOD_CASH = 'cash'
	METHOD_CARD = 'card'
	METHOD_QR = 'qr'
	METHOD_MIXED = 'mixed'
	PAYMENT_METHOD_CHOICES = [
		(METHOD_CASH, 'Cash'),
		(METHOD_CARD, 'Card'),
		(METHOD_QR, 'QR'),
		(METHOD_MIXED, 'Mixed'),
	]
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	table = models.ForeignKey(Table, on_delete=models.PROTECT, related_name='orders')
	waiter_id = models.CharField(max_length=64, null=True, blank=True)
	waiter_name = models.CharField(max_length=100, blank=True, default='')
	status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_OPEN, db_index=True)
	total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
	amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
	payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID)
	payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, null=True, blank=True)
	special_instructions = models.TextField(blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)
	completed_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['-created_at']

	@property
	def is_open(self):
		return self.status == self.STATUS_OPEN

	def __str__(self):
		return f"Order {self.id} ({self.table})"


class OrderItem(models.Model):
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
	menu_item = models.ForeignKey(MenuItem, null=True, blank=True, on_delete=models.SET_NULL)
	# name and price are captured when the item is added, never joined live
	menu_item_name = models.CharField(max_length=100)
	unit_price = models.DecimalField(max_digits=12, decimal_places=2)
	quantity = models.PositiveIntegerField()
	subtotal = models.DecimalField(max_digits=12, decimal_places=2)
	special_requests = models.TextField(blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['created_at']

	def __str__(self):
		return f"{self.quantity} x {self.menu_item_name} for Order {self.order_id}"
