"""
Script to add performance indexes to the database

Run this after database initialization to optimize query performance.
This is idempotent - safe to run multiple times.
"""
from workout_gym import create_app, db
from sqlalchemy import text

INDEXES = [
    ("idx_exercise_workouts_order", "exercise_workouts", "(workout_id, \"order\")"),
    ("idx_workout_offerings_course_offering", "workout_offerings", "(course_offering_id, workout_id)"),
    ("idx_student_extensions_user", "student_extensions", "(user_id, workout_offering_id)"),
    ("idx_workout_scores_offering", "workout_scores", "(workout_offering_id)"),
    ("idx_workouts_public_recent", "workouts", "(is_public, created_at DESC)"),
    ("idx_course_enrollments_offering_role", "course_enrollments", "(course_offering_id, role)"),
]


def add_performance_indexes():
    """Add indexes for better query performance"""
    app = create_app()

    with app.app_context():
        print("\n" + "=" * 60)
        print("Adding Performance Indexes")
        print("=" * 60 + "\n")

        failed = 0
        for idx_name, table_name, columns in INDEXES:
            try:
                db.session.execute(text(f"""
                    CREATE INDEX IF NOT EXISTS {idx_name}
                    ON {table_name} {columns}
                """))
                db.session.commit()  # Commit each index individually
                print(f"   {idx_name} created on {table_name}")
            except Exception as e:
                db.session.rollback()
                failed += 1
                print(f"   {idx_name}: {str(e)}")

        print("\n" + "=" * 60)
        if failed:
            print(f"{failed} of {len(INDEXES)} indexes could not be created")
        else:
            print("Performance indexes added successfully!")
        print("=" * 60 + "\n")
        return failed == 0


if __name__ == '__main__':
    add_performance_indexes()
