# backend/create_initial_admin.py

import os

from stockdb.apps.accounts import models, schemas, services
from stockdb.database import SessionLocal


def main() -> None:
    db = SessionLocal()
    try:
        slug = os.getenv("ADMIN_COMPANY_SLUG", "main-store")
        email = os.getenv("ADMIN_EMAIL", "admin@stock.local")
        password = os.getenv("ADMIN_PASSWORD", "ChangeMe123")

        existing = services.get_company_by_slug(db, slug)
        if existing:
            user = (
                db.query(models.User)
                .filter(models.User.company_id == existing.id, models.User.email == email)
                .first()
            )
            print(f"[INFO] Company already exists: id={existing.id}, slug={existing.login_slug}")
            if user:
                print(f"[INFO] Admin already exists: id={user.id}, email={user.email}")
            return

        company, user = services.register_company(
            db,
            schemas.RegisterRequest(
                company=schemas.CompanyBase(
                    code=os.getenv("ADMIN_COMPANY_CODE", "MAIN"),
                    name=os.getenv("ADMIN_COMPANY_NAME", "Main Store"),
                    login_slug=slug,
                ),
                admin=schemas.UserBase(email=email, first_name="Store", last_name="Admin"),
                password=password,
            ),
        )
        db.commit()

        print("[OK] Created company and admin user:")
        print(f"  company: {company.code} ({company.login_slug})")
        print(f"  id:      {user.id}")
        print(f"  email:   {user.email}")
        print(f"  role:    {user.role.value}")
        print(f"  login password: {password}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
