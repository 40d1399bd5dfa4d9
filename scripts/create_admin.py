# create_admin.py: create (or reset) a back-office account
import argparse
import getpass

from registrar import create_app, db
from registrar.models.user import User


def main():
    parser = argparse.ArgumentParser(description="Create a back-office user")
    parser.add_argument("username")
    parser.add_argument("--role", choices=("Admin", "Staff"), default="Admin")
    parser.add_argument("--reset", action="store_true",
                        help="reset the password when the user exists")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        user = User.query.filter_by(username=args.username).first()
        if user and not args.reset:
            print(f"User {args.username} already exists (use --reset)")
            return 1

        password = getpass.getpass("Password: ")
        if len(password) < 8:
            print("Password must be at least 8 characters")
            return 1

        if user is None:
            user = User(username=args.username, role=args.role)
            db.session.add(user)
        else:
            user.role = args.role
        user.set_password(password)
        db.session.commit()
        print(f"User {user.username} saved with role {user.role}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
