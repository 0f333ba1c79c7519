import logging

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import MONGO_URI, DATABASE_NAME

logger = logging.getLogger(__name__)

client = None
db = None


async def connect_to_mongo():
    global client, db

    if not MONGO_URI:
        raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

    if "localhost" in MONGO_URI or "127.0.0.1" in MONGO_URI:
        logger.warning("Connecting to LOCAL MongoDB, not Atlas")

    client = AsyncIOMotorClient(MONGO_URI)
    db = client[DATABASE_NAME]
    await client.admin.command('ping')
    await ensure_indexes(db)

    logger.info("Connected to MongoDB database '%s'", DATABASE_NAME)


async def ensure_indexes(database):
    """Lookup indexes only; email uniqueness is checked in the handlers."""
    await database.users.create_index("email")
    await database.admins.create_index("email")
    await database.otps.create_index([("userId", 1), ("purpose", 1)])
    await database.password_resets.create_index("email")
    await database.invites.create_index([("sender", 1), ("recipient", 1), ("status", 1)])
    await database.invites.create_index([("recipient", 1), ("status", 1)])
    await database.chat_sessions.create_index("inviteId")
    await database.chat_sessions.create_index([("participants", 1), ("status", 1), ("lastActivity", -1)])
    await database.jobs.create_index([("status", 1), ("isVisible", 1)])
    await database.jobs.create_index([("createdAt", -1)])


async def close_mongo_connection():
    if client:
        client.close()


def get_db():
    return db
