from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from orders.models import Order


class Payment(models.Model):
	METHOD_CHOICES = [
		('cash', 'Cash'),
		('card', 'Card'),
		('qr', 'QR'),
	]

	order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payments')
	method = models.CharField(max_length=10, choices=METHOD_CHOICES)
	amount = models.DecimalField(max_digits=12, decimal_places=2)
	ext_ref = models.CharField(max_length=100, blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return f"Payment {self.id} for Order {self.order_id} - {self.method} {self.amount}"


class Receipt(models.Model):
	"""Append-only snapshot of a closed order, kept after the order is gone"""
	order_id = models.UUIDField(db_index=True)
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	items = models.JSONField(default=list, encoder=DjangoJSONEncoder)
	total_amount = models.DecimalField(max_digits=12, decimal_places=2)
	payment_method = models.CharField(max_length=10, null=True, blank=True)
	completed_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self):
		return f"Receipt for Order {self.order_id}"


class OrderDeletion(models.Model):
	REASON = 'Order receipt deleted by administrator'

	order_id = models.UUIDField(db_index=True)
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	table_id = models.UUIDField(null=True, blank=True)
	deleted_by_id = models.CharField(max_length=64, null=True, blank=True)
	deleted_by_name = models.CharField(max_length=100, default='Admin')
	status = models.CharField(max_length=10)
	total_amount = models.DecimalField(max_digits=12, decimal_places=2)
	payment_method = models.CharField(max_length=10, null=True, blank=True)
	created_at = models.DateTimeField(null=True, blank=True)
	completed_at = models.DateTimeField(null=True, blank=True)
	items = models.JSONField(default=list, encoder=DjangoJSONEncoder)
	payments = models.JSONField(default=list, encoder=DjangoJSONEncoder)
	reason = models.CharField(max_length=200, default=REASON)
	deleted_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-deleted_at']

	def __str__(self):
		return f"Deletion of Order {self.order_id} by {self.deleted_by_name}"


class AdminNotification(models.Model):
	TYPE_ORDER_DELETED = 'order_deleted'
	TYPE_CHOICES = [
		(TYPE_ORDER_DELETED, 'Order deleted'),
	]

	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	type = models.CharField(max_length=30, choices=TYPE_CHOICES)
	title = models.CharField(max_length=200)
	message = models.TextField()
	payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
	is_read = models.BooleanField(default=False)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self):
		return self.title
