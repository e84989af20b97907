import logging
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import click
from flask import Flask, jsonify
from flask.cli import with_appcontext
from flask_cors import CORS
from .extensions import db, migrate
from .config import Config
from .http import register_error_handlers
from .blueprints.availability import bp as availability_bp
from .blueprints.reservations import bp as reservations_bp
from .blueprints.orders import bp as orders_bp
from .blueprints.admin import bp as admin_bp
from .models import MenuItem, Order, OrderItem, Reservation, SlotLedger
from .services.catalog import TimeSlotCatalog

SAMPLE_MENU = [
    ("Bruschetta", "Starters", "8.50"),
    ("Burrata", "Starters", "12.00"),
    ("Margherita Pizza", "Mains", "14.00"),
    ("Tagliatelle al Ragu", "Mains", "18.50"),
    ("Grilled Sea Bass", "Mains", "24.00"),
    ("Tiramisu", "Desserts", "7.50"),
    ("Panna Cotta", "Desserts", "6.75"),
]

SAMPLE_GUESTS = [
    ("John Doe", "john@example.com", "1234567890"),
    ("Jane Smith", "jane@example.com", "0987654321"),
    ("Bob Johnson", "bob@example.com", "5551234567"),
    ("Sarah Johnson", "sarah@example.com", "5559876543"),
]


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    CORS(app)

    db.init_app(app)
    migrate.init_app(app, db)

    register_error_handlers(app)

    app.register_blueprint(availability_bp, url_prefix="/api/availability")
    app.register_blueprint(reservations_bp, url_prefix="/api/reservations")
    app.register_blueprint(orders_bp, url_prefix="/api/orders")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    @app.get("/health")
    def health():
        return jsonify(status="ok")

    @click.command("seed")
    @with_appcontext
    def seed_command():
        """Creates sample data for the database."""
        db.session.query(OrderItem).delete()
        db.session.query(Order).delete()
        db.session.query(MenuItem).delete()
        db.session.query(SlotLedger).delete()
        db.session.query(Reservation).delete()
        db.session.commit()
        click.echo("Cleared existing data.")

        menu = [MenuItem(name=n, category=c, price=Decimal(p), is_available=True) for n, c, p in SAMPLE_MENU]
        db.session.add_all(menu)
        db.session.commit()
        click.echo(f"Created {len(menu)} menu items.")

        now = datetime.now(tz=timezone.utc).replace(tzinfo=None)
        statuses = ["pending", "confirmed", "preparing", "ready", "completed", "cancelled"]
        for i in range(20):
            name, email, phone = random.choice(SAMPLE_GUESTS)
            picks = random.sample(menu, k=random.randint(1, 3))
            items = [OrderItem(menu_item_id=m.id, name=m.name, price=m.price, quantity=random.randint(1, 3)) for m in picks]
            delivery = random.choice([True, False])
            fee = Decimal("5.00") if delivery else Decimal("0.00")
            db.session.add(Order(
                order_number=f"ORD{i + 1:04d}",
                customer_name=name,
                customer_email=email,
                customer_phone=phone,
                fulfillment_type="delivery" if delivery else "pickup",
                delivery_street="1 Main St" if delivery else None,
                delivery_city="Springfield" if delivery else None,
                delivery_state="IL" if delivery else None,
                delivery_zip_code="62701" if delivery else None,
                items=items,
                delivery_fee=fee,
                total=sum(it.price * it.quantity for it in items) + fee,
                status=random.choice(statuses),
                payment_method="card",
                payment_last_four=f"{random.randint(0, 9999):04d}",
                created_at=now - timedelta(days=random.randint(0, 60)),
            ))
        db.session.commit()
        click.echo("Created 20 orders.")

        # Seed through the direct model, staying under each slot's capacity.
        catalog = TimeSlotCatalog.from_config(app.config)
        today = now.date()
        held: dict[tuple, int] = {}
        created = 0
        for n in range(25):
            day = today + timedelta(days=random.randint(0, 2))
            slots = catalog.slots_for(day)
            if not slots:
                continue
            slot = random.choice(slots)
            guests = random.randint(1, app.config["MAX_PARTY_SIZE"])
            if held.get((day, slot.label), 0) + guests > slot.total_seats:
                continue
            held[(day, slot.label)] = held.get((day, slot.label), 0) + guests
            name, email, phone = random.choice(SAMPLE_GUESTS)
            db.session.add(Reservation(
                reservation_code=f"RES{day.year}SEED{n:02d}",
                name=name,
                email=email,
                phone=phone,
                date=day,
                time=slot.label,
                guests=guests,
                status=random.choice(["pending", "confirmed"]),
            ))
            created += 1
        db.session.commit()
        click.echo(f"Created {created} reservations.")
        click.echo("Database seeded!")

    app.cli.add_command(seed_command)

    return app
