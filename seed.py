import asyncio
from sqlalchemy import select
from grant_portal.core.config import settings
from grant_portal.core.db import AsyncSessionLocal, init_models
from grant_portal.core.security import hash_password
from grant_portal.models.auth import User
from grant_portal.models.enums import UserRole
from grant_portal.services.templates import TEMPLATE_REGISTRY, template_service


async def seed_database():
    print("🌱 Starting database seed...")
    await init_models()

    print("📄 Preparing document templates...")
    for template_id in TEMPLATE_REGISTRY:
        asset = template_service.get(template_id)
        print(f"  ✅ {template_id}: {asset.filename} ({len(asset.content)} bytes)")

    print("\n🔐 Creating admin user...")
    if not settings.ADMIN_PASSWORD:
        print("  ⚠️  ADMIN_PASSWORD is not set - skipping admin user")
        return

    async with AsyncSessionLocal() as db:
        email = settings.ADMIN_EMAIL.lower()
        result = await db.execute(select(User).where(User.email == email))
        existing_admin = result.scalar_one_or_none()

        if not existing_admin:
            db.add(User(
                email=email,
                first_name="Portal",
                last_name="Admin",
                hashed_password=hash_password(settings.ADMIN_PASSWORD),
                role=UserRole.ADMIN,
            ))
            await db.commit()
            print(f"  ✅ Created admin user {email}")
        elif existing_admin.role != UserRole.ADMIN:
            existing_admin.role = UserRole.ADMIN
            await db.commit()
            print(f"  ✅ Promoted {email} to admin")
        else:
            print("  ⏭️  Admin already exists")

    print("\n✨ Database seeding completed!\n")


if __name__ == "__main__":
    asyncio.run(seed_database())
