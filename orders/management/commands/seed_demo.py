from decimal import Decimal

from django.core.management.base import BaseCommand
from orders.models import MenuItem, Table


def seats_for(number):
    if number <= 20:
        return 2
    if number <= 35:
        return 4
    if number <= 45:
        return 6
    return 8


class Command(BaseCommand):
    help = 'Seed the database with the demo menu and tables'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete menu items and unused tables before seeding',
        )
        parser.add_argument(
            '--tables',
            type=int,
            default=50,
            help='Number of tables to create (default: 50)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            MenuItem.objects.all().delete()
            # Tables with order history are protected
            unused = Table.objects.filter(orders__isnull=True)
            removed, _ = unused.delete()
            self.stdout.write(self.style.SUCCESS(f'Cleared the menu and {removed} unused tables'))

        menu_items = [
            {
                "name": "Margarita Pitsa",
                "description": "Fresh tomato, mozzarella and basil",
                "price": Decimal("24.99"),
                "category": "Pizza",
                "preparation_time": 15
            },
            {
                "name": "Pepperoni Pitsa",
                "description": "Pepperoni, mozzarella and tomato sauce",
                "price": Decimal("27.99"),
                "category": "Pizza",
                "preparation_time": 15
            },
            {
                "name": "Chicken Caesar Salad",
                "description": "Romaine, grilled chicken, parmesan and croutons",
                "price": Decimal("18.99"),
                "category": "Salads",
                "preparation_time": 8
            },
            {
                "name": "Greek Salad",
                "description": "Tomato, cucumber, olives and feta",
                "price": Decimal("16.99"),
                "category": "Salads",
                "preparation_time": 5
            },
            {
                "name": "Beef Burger",
                "description": "Beef patty, cheddar and pickles",
                "price": Decimal("22.99"),
                "category": "Burgers",
                "preparation_time": 12
            },
            {
                "name": "Fish and Chips",
                "description": "Battered fish with fries",
                "price": Decimal("19.99"),
                "category": "Mains",
                "preparation_time": 18
            },
            {
                "name": "Carbonara",
                "description": "Spaghetti, egg, pecorino and guanciale",
                "price": Decimal("17.99"),
                "category": "Pasta",
                "preparation_time": 14
            },
            {
                "name": "Tiramisu",
                "description": "Mascarpone, coffee and cocoa",
                "price": Decimal("8.99"),
                "category": "Desserts",
                "preparation_time": 5
            }
        ]

        created_items = []
        for item_data in menu_items:
            item, created = MenuItem.objects.get_or_create(
                name=item_data['name'],
                restaurant_id=None,
                defaults={
                    'description': item_data['description'],
                    'price': item_data['price'],
                    'category': item_data['category'],
                    'preparation_time': item_data['preparation_time']
                }
            )
            if created:
                created_items.append(item)
                self.stdout.write(
                    f"Created: {item.name} - {item.price} ({item.category})"
                )
            else:
                self.stdout.write(
                    f"Already exists: {item.name}"
                )

        self.stdout.write(
            self.style.SUCCESS(f'\nTotal new menu items created: {len(created_items)}')
        )

        created_tables = 0
        for number in range(1, options['tables'] + 1):
            _, created = Table.objects.get_or_create(
                number=number,
                restaurant_id=None,
                defaults={'seats': seats_for(number)}
            )
            created_tables += int(created)

        self.stdout.write(
            self.style.SUCCESS(f'Total new tables created: {created_tables}')
        )

        self.stdout.write("\nMenu:")
        for item in MenuItem.objects.filter(restaurant_id=None):
            self.stdout.write(
                f"{item.name:24s} | {item.category:10s} | {item.price:8.2f}"
            )
