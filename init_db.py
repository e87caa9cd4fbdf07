"""
Database initialization script
Creates all tables and seeds the catalog with sample categories, funkos and users
"""
import os

from app.database import engine, Base, SessionLocal
from app.core.security import hash_password
from app.models.categories import Categoria
from app.models.funkos import Funko, IMAGE_DEFAULT
from app.models.user import User, UserRole
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_CATEGORIES = ["Anime", "Películas", "Videojuegos"]

SEED_FUNKOS = [
    ("Goku Super Saiyan", 19.99, "Anime"),
    ("Darth Vader", 24.50, "Películas"),
    ("Mario Bros", 17.75, "Videojuegos"),
]


def seed_data(db):
    """Insert seed rows that are not present yet"""
    categories = {}
    for name in SEED_CATEGORIES:
        categoria = db.query(Categoria).filter(Categoria.name == name).first()
        if not categoria:
            categoria = Categoria(name=name)
            db.add(categoria)
            logger.info(f"Seeding category {name}")
        categories[name] = categoria
    db.flush()

    for name, price, category in SEED_FUNKOS:
        if not db.query(Funko).filter(Funko.name == name).first():
            db.add(Funko(name=name, price=price, category_id=categories[category].id, image=IMAGE_DEFAULT))
            logger.info(f"Seeding funko {name}")

    users = [
        ("admin", os.getenv("ADMIN_USER_EMAIL", "admin@funkoapi.local"),
         os.getenv("ADMIN_USER_PASSWORD", "Admin123!"), UserRole.ADMIN),
        ("user", os.getenv("DEFAULT_USER_EMAIL", "user@funkoapi.local"),
         os.getenv("DEFAULT_USER_PASSWORD", "User123!"), UserRole.USER),
    ]
    for username, email, password, role in users:
        if not db.query(User).filter(User.username == username).first():
            db.add(User(username=username, email=email, password_hash=hash_password(password), role=role.value))
            logger.info(f"Seeding user {username} ({role.value})")

    db.commit()


def init_db():
    """Initialize database with all tables and seed data"""
    try:
        logger.info("Creating all database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("✓ Database tables created successfully!")

        db = SessionLocal()
        try:
            seed_data(db)
        finally:
            db.close()
        logger.info("✓ Seed data loaded")
        logger.info("\nDatabase initialization complete!")
        logger.info("You can now start the FastAPI server.")

    except Exception as e:
        logger.error(f"✗ Error initializing database: {str(e)}")
        raise

if __name__ == "__main__":
    init_db()
