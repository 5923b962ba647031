"""
Initialize database with default workout policies and an admin user
"""
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from workout_gym import create_app, db
from workout_gym.models.user import User
from workout_gym.models.workout_policy import WorkoutPolicy


def init_database():
    """Create tables, default policies and the admin account"""
    app = create_app()

    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        for policy in WorkoutPolicy.defaults():
            if not WorkoutPolicy.query.filter_by(name=policy.name).first():
                print(f"Creating workout policy: {policy.name}...")
                db.session.add(policy)

        admin = User.query.filter_by(username='admin').first()
        if not admin:
            print("Creating admin user...")
            admin = User(
                username='admin',
                email='admin@workoutgym.local',
                role='admin'
            )
            admin.set_password(os.getenv('ADMIN_PASSWORD', 'admin123'))  # Change this in production!
            db.session.add(admin)

        db.session.commit()
        print("\nDatabase initialized successfully!")
        print("Admin: username='admin' (password from ADMIN_PASSWORD, default 'admin123')")
        print("\nIMPORTANT: Change this password in production!")


if __name__ == '__main__':
    init_database()
