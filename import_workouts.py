"""
Script to bulk import workouts from a JSON export
Usage: python import_workouts.py <file.json> [creator_username]
Example: python import_workouts.py workouts.json admin
"""
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from workout_gym import create_app
from workout_gym.errors import InvalidInput
from workout_gym.models.user import User
from workout_gym.services.import_service import ImportService


def import_workouts(path, username=None):
    """Import every workout record in ``path``"""
    app = create_app()

    with app.app_context():
        creator = None
        if username:
            creator = User.query.filter_by(username=username).first()
            if not creator:
                print(f"Error: user '{username}' not found")
                return False

        with open(path, encoding='utf-8') as f:
            records = json.load(f)

        try:
            report = ImportService.import_workouts(records, creator=creator)
        except InvalidInput as e:
            print(f"Error: {e.message}")
            return False

        print(f"\nCreated {len(report.created)} workouts")
        for message in report.skipped:
            print(f"   skipped: {message}")
        for message in report.failed:
            print(f"   failed: {message}")

        return report.ok


if __name__ == '__main__':
    if len(sys.argv) not in (2, 3):
        print("Usage: python import_workouts.py <file.json> [creator_username]")
        sys.exit(1)

    success = import_workouts(sys.argv[1], sys.argv[2] if len(sys.argv) == 3 else None)
    sys.exit(0 if success else 1)
