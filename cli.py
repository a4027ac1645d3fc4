import argparse
import datetime
import json
import logging
import shutil

from models import NewSession
from rest_api import GymAPI
from tools import CalorieEstimator

logger = logging.getLogger(__name__)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)
    logger.info("Backed up %s to %s", db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)
    logger.info("Restored %s from %s", db_path, backup_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Populate the store with a demo workout and session if it is empty."""
    api = GymAPI(db_path=db_path, yaml_path=yaml_path)
    if api.store.list_workouts():
        print("Database already contains workouts")
        return
    workout = api.store.create_workout("Demo A", "Upper body and treadmill")
    api.store.add_exercise(workout.id, {"name": "Bench Press", "type": "PESO"})
    api.store.add_exercise(workout.id, {"name": "Hamstring Stretch", "type": "ALONGAMENTO"})
    api.store.add_exercise(workout.id, {"name": "Treadmill", "type": "AEROBICO"})
    end = datetime.datetime.now(datetime.timezone.utc)
    start = end - datetime.timedelta(minutes=50)
    entries = [
        {"type": "PESO", "exerciseName": "Bench Press", "sets": [60, 62.5, 65]},
        {"type": "ALONGAMENTO", "exerciseName": "Hamstring Stretch", "seconds": 45},
        {"type": "AEROBICO", "exerciseName": "Treadmill", "minutes": 20},
    ]
    session = NewSession.model_validate(
        {
            "workoutId": workout.id,
            "startedAt": start.isoformat(),
            "endedAt": end.isoformat(),
            "entries": entries,
        }
    )
    api.store.create_session(
        session.model_copy(
            update={"calories": CalorieEstimator.estimate(session.entries)}
        )
    )
    print("Demo data inserted")


def print_stats(db_path: str, yaml_path: str, year: int) -> None:
    api = GymAPI(db_path=db_path, yaml_path=yaml_path)
    print(json.dumps(api.statistics.overview(year), indent=2))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description="Utility commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")
    demo.add_argument("--yaml", default="settings.yaml")

    stats = sub.add_parser("stats")
    stats.add_argument("--db", default="workout.db")
    stats.add_argument("--yaml", default="settings.yaml")
    stats.add_argument("--year", type=int, default=datetime.date.today().year)

    args = parser.parse_args()

    if args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml)
    elif args.cmd == "stats":
        print_stats(args.db, args.yaml, args.year)


if __name__ == "__main__":
    main()
