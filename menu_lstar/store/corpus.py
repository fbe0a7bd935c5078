"""
Demo reference corpus.

Menu items of a legacy point-of-sale system (name, price, category) used to
build the learning alphabet and to answer membership queries automatically,
plus the name-transformation examples of the demo session.
"""

DEMO_ITEMS = [
    {'name': 'Margherita Pizza', 'price': 9.99, 'category': 'Pizza'},
    {'name': 'BBQ Chicken Pizza', 'price': 11.99, 'category': 'Pizza'},
    {'name': 'Pepperoni Pizza', 'price': 10.99, 'category': 'Pizza'},
    {'name': 'Caesar Salad', 'price': 7.5, 'category': 'Salad'},
    {'name': 'Greek Salad', 'price': 8.5, 'category': 'Salad'},
    {'name': 'Spaghetti Carbonara', 'price': 10.5, 'category': 'Pasta'},
    {'name': 'Penne Arrabbiata', 'price': 9.5, 'category': 'Pasta'},
    {'name': 'Chocolate Cake', 'price': 6.0, 'category': 'Dessert'},
    {'name': 'Tiramisu', 'price': 5.5, 'category': 'Dessert'},
    {'name': 'Espresso Coffee', 'price': 2.5, 'category': 'Drinks'},
    {'name': 'Fresh Orange Juice', 'price': 3.0, 'category': 'Drinks'},
    {'name': 'Hawaiian Pizza', 'price': 12.99, 'category': 'Pizza'},
    {'name': 'Veggie Supreme Pizza', 'price': 11.5, 'category': 'Pizza'},
    {'name': 'Cobb Salad', 'price': 8.99, 'category': 'Salad'},
    {'name': 'Pasta Bolognese', 'price': 11.0, 'category': 'Pasta'},
    {'name': 'Cheesecake', 'price': 6.5, 'category': 'Dessert'},
    {'name': 'Cappuccino', 'price': 3.5, 'category': 'Drinks'},
]


def _pair(name, price, category, title):
    return (
        {'name': name, 'price': price, 'category': category},
        {'title': title, 'price': price, 'category': category},
    )


# (source, target) pairs: the category suffix is dropped from pizza names only
DEMO_EXAMPLES = [
    _pair('Margherita Pizza', 9.99, 'Pizza', 'Margherita'),
    _pair('BBQ Chicken Pizza', 11.99, 'Pizza', 'BBQ Chicken'),
    _pair('Caesar Salad', 7.5, 'Salad', 'Caesar Salad'),
    _pair('Spaghetti Carbonara', 10.5, 'Pasta', 'Spaghetti Carbonara'),
    _pair('Chocolate Cake', 6.0, 'Dessert', 'Chocolate Cake'),
    _pair('Hawaiian Pizza', 12.99, 'Pizza', 'Hawaiian'),
]
