# create.py -- bootstrap the database and the first admin account
from getpass import getpass
from contractdesk import create_app
from contractdesk.extensions import db
from contractdesk.models.user import User


def main():
    app = create_app()
    with app.app_context():
        db.create_all()

        email = input("Admin email: ").strip().lower()
        name = input("Full name: ").strip()
        phone = input("Phone (optional): ").strip()
        password = getpass("Password: ")
        if len(password) < 8:
            print("Password must be at least 8 characters.")
            return

        # Check existing
        if User.query.filter_by(email=email).first():
            print("User with that email already exists.")
            return

        user = User(name=name, email=email, phone=phone or None, role="admin")
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f"Admin user {email} created successfully.")


if __name__ == "__main__":
    main()
