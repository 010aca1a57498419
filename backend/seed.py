import logging
import sys
import uuid

# Add current directory to sys.path to resolve 'app' modules
sys.path.append(".")

from app.core.db import SessionLocal
from app.core.security import get_password_hash
from app.models.user import User

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_PASSWORD = "iruka"

SEED_USERS = [
    ("dev@iruka.com", "Dev Iruka", ["dev"]),
    ("qc@iruka.com", "QC Iruka", ["qc"]),
    ("cto@iruka.com", "CTO Iruka", ["cto"]),
    ("ceo@iruka.com", "CEO Iruka", ["ceo"]),
    ("admin@iruka.com", "Admin Iruka", ["admin"]),
]


def seed_db():
    db = SessionLocal()
    try:
        logger.info("Seeding database...")

        for email, full_name, roles in SEED_USERS:
            user = db.query(User).filter_by(email=email).first()
            if not user:
                user = User(
                    id=uuid.uuid4(),
                    email=email,
                    hashed_password=get_password_hash(DEFAULT_PASSWORD),
                    full_name=full_name,
                    roles=roles,
                    is_active=True,
                )
                db.add(user)
                logger.info(f"Created User: {email} ({', '.join(roles)})")
            else:
                if not user.hashed_password.startswith("$pbkdf2-sha256$"):
                    user.hashed_password = get_password_hash(DEFAULT_PASSWORD)
                    logger.info(f"Updated password hash for {email}")
                if user.roles != roles:
                    user.roles = roles
                    logger.info(f"Updated roles for {email}")

        db.commit()
        logger.info("Seeding complete!")

    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_db()
