#!/usr/bin/env python3
"""
Seed script to create a demo restaurant with menus, an order, a reservation and a review
"""

import asyncio
from datetime import timedelta

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEMO_TENANT = "marios-kitchen"


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from app.database import SessionLocal, init_db, utcnow
    from app.models import Menu, Order, Reservation, Restaurant, Review, User

    await init_db()

    async with SessionLocal() as db:
        # Check if the demo restaurant already exists
        result = await db.execute(
            select(Restaurant).where(Restaurant.name == "Mario's Italian Kitchen")
        )
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo users...")

        owner = User(
            tenant_id=DEMO_TENANT,
            email="mario@marios-kitchen.com",
            hashed_password=pwd_context.hash("mario123"),
            first_name="Mario",
            last_name="Rossi",
            phone="+15559876543",
            roles=["Owner"],
        )
        guest = User(
            email="guest@example.com",
            hashed_password=pwd_context.hash("guest123"),
            first_name="Gina",
            last_name="Guest",
            roles=["Guest"],
        )
        db.add_all([owner, guest])
        await db.flush()

        restaurant = Restaurant(
            name="Mario's Italian Kitchen",
            description="Neighbourhood Italian, wood-fired pizza and fresh pasta",
            address="123 Main Street, New York, NY 10001",
            opening_hours="11:00",
            closing_hours="22:00",
            user_id=owner.id,
            tenant_id=DEMO_TENANT,
        )
        db.add(restaurant)
        await db.flush()

        print(f"Created restaurant: {restaurant.name} (ID: {restaurant.id})")
        print("Creating menu items...")

        menu_items = [
            # Appetizers
            {"name": "Bruschetta", "description": "Grilled bread topped with fresh tomatoes, garlic, basil, and olive oil", "price": 899, "category": "Appetizers"},
            {"name": "Calamari Fritti", "description": "Crispy fried calamari with marinara sauce", "price": 1299, "category": "Appetizers"},
            {"name": "Garlic Bread", "description": "Toasted bread with garlic butter and herbs", "price": 599, "category": "Appetizers"},

            # Pizzas
            {"name": "Margherita Pizza", "description": "Fresh mozzarella, tomato sauce, and basil", "price": 1499, "category": "Pizza"},
            {"name": "Pepperoni Pizza", "description": "Classic pepperoni with mozzarella cheese", "price": 1699, "category": "Pizza"},
            {"name": "Vegetable Pizza", "description": "Bell peppers, onions, mushrooms, olives, and tomatoes", "price": 1699, "category": "Pizza"},

            # Pasta
            {"name": "Spaghetti Bolognese", "description": "Spaghetti with rich meat sauce", "price": 1599, "category": "Pasta"},
            {"name": "Fettuccine Alfredo", "description": "Fettuccine in creamy parmesan sauce", "price": 1499, "category": "Pasta"},
            {"name": "Lasagna", "description": "Layers of pasta, meat sauce, ricotta, and mozzarella", "price": 1699, "category": "Pasta"},

            # Desserts
            {"name": "Tiramisu", "description": "Classic Italian coffee-flavored dessert", "price": 899, "category": "Desserts"},
            {"name": "Cannoli", "description": "Crispy shells filled with sweet ricotta cream", "price": 699, "category": "Desserts"},

            # Drinks
            {"name": "Italian Soda", "description": "Sparkling water with your choice of flavor", "price": 399, "category": "Drinks"},
            {"name": "Espresso", "description": "Single or double shot", "price": 349, "category": "Drinks"},
        ]

        for item_data in menu_items:
            db.add(Menu(restaurant_id=restaurant.id, **item_data))

        now = utcnow()
        db.add(Order(
            date=now,
            total_price=2998,
            status="confirmed",
            user_id=guest.id,
            restaurant_id=restaurant.id,
        ))
        db.add(Reservation(
            date=now + timedelta(days=2),
            time="19:30",
            number_of_people=4,
            table_number=12,
            user_id=guest.id,
            restaurant_id=restaurant.id,
        ))
        db.add(Review(
            rating=5,
            comment="Best lasagna in town.",
            date=now,
            user_id=guest.id,
            restaurant_id=restaurant.id,
        ))

        await db.commit()

        print(f"""
Demo data created successfully!

Restaurant: Mario's Italian Kitchen
  ID: {restaurant.id}
  Tenant: {DEMO_TENANT}

Users:
  Owner:
    Email: mario@marios-kitchen.com
    Password: mario123

  Guest:
    Email: guest@example.com
    Password: guest123

Menu: {len(menu_items)} items created
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
