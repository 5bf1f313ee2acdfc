from django.db import models


class Staff(models.Model):
	ROLE_CHOICES = [
		('waiter', 'Waiter'),
		('manager', 'Manager'),
	]
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	name = models.CharField(max_length=100)
	login = models.CharField(max_length=60, unique=True)
	role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='waiter')
	daily_wage = models.DecimalField(max_digits=12, decimal_places=2, default=0)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-created_at']
		verbose_name_plural = 'staff'

	def __str__(self):
		return f"{self.name} ({self.role})"


class WagePayment(models.Model):
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='wage_payments')
	amount = models.DecimalField(max_digits=12, decimal_places=2)
	paid_date = models.DateField()
	note = models.CharField(max_length=200, blank=True, default='')
	paid_by = models.CharField(max_length=100, blank=True, default='')

	class Meta:
		ordering = ['-paid_date', '-id']

	def __str__(self):
		return f"{self.amount} to {self.staff.name} on {self.paid_date}"


class Expense(models.Model):
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	name = models.CharField(max_length=200)
	amount = models.DecimalField(max_digits=12, decimal_places=2)
	expense_date = models.DateField()
	created_by = models.CharField(max_length=100, null=True, blank=True)

	class Meta:
		ordering = ['-expense_date', '-id']

	def __str__(self):
		return f"{self.name}: {self.amount}"


class Debtor(models.Model):
	restaurant_id = models.UUIDField(null=True, blank=True, db_index=True)
	name = models.CharField(max_length=100)
	phone = models.CharField(max_length=30, null=True, blank=True)
	amount = models.DecimalField(max_digits=12, decimal_places=2)
	due_date = models.DateField(null=True, blank=True)
	paid = models.BooleanField(default=False)
	paid_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self):
		return f"{self.name} owes {self.amount}"
