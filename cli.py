import argparse
import json
import shutil

from algorithms import PaceCalculator, UnitConverter
from db import KeyValueStore, LoggedWorkoutRepository
from rest_api import FitTrackAPI
from seed_sample_data import seed
from stats_service import StatisticsService


def export_workouts(db_path: str, output: str, client_id: str | None = None) -> int:
    """Write finished workouts as a JSON list and return how many were written."""
    history = LoggedWorkoutRepository(KeyValueStore(db_path))
    workouts = history.fetch_for_client(client_id) if client_id else history.fetch_all()
    with open(output, "w", encoding="utf-8") as f:
        json.dump([w.to_json() for w in workouts], f, indent=2)
    return len(workouts)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def print_records(db_path: str, client_id: str, unit: str = "kg") -> None:
    stats = StatisticsService(LoggedWorkoutRepository(KeyValueStore(db_path)))
    for record in stats.personal_records(client_id):
        print(record.exercise_name)
        for entry in record.records:
            weight = UnitConverter.to_display_weight(entry.weight, unit)
            one_rm = UnitConverter.to_display_weight(entry.estimated_1rm, unit)
            print(f"  {weight:.1f} {unit} x {entry.reps} (e1RM {round(one_rm)} {unit}) {entry.date[:10]}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="fittrack.db")
    exp.add_argument("--out", default="workouts.json")
    exp.add_argument("--client")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="fittrack.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="fittrack.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="fittrack.db")
    demo.add_argument("--yaml", default="settings.yaml")

    rec = sub.add_parser("records")
    rec.add_argument("--db", default="fittrack.db")
    rec.add_argument("--client", required=True)
    rec.add_argument("--unit", choices=["kg", "lbs"], default="kg")

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lbs"], required=True)

    dist = sub.add_parser("distance")
    dist.add_argument("--value", type=float, required=True)
    dist.add_argument("--from", dest="from_unit", choices=["km", "mi", "m", "yd"], required=True)
    dist.add_argument("--to", dest="to_unit", choices=["km", "mi", "m", "yd"], required=True)

    pace = sub.add_parser("pace")
    pace.add_argument("--distance", type=float, required=True)
    pace.add_argument("--time", required=True, help="HH:MM:SS, MM:SS or SS")

    args = parser.parse_args()

    if args.cmd == "export":
        count = export_workouts(args.db, args.out, args.client)
        print(f"Exported {count} workouts to {args.out}")
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        seed(FitTrackAPI(db_path=args.db, yaml_path=args.yaml))
    elif args.cmd == "records":
        print_records(args.db, args.client, args.unit)
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {UnitConverter.kg_to_lbs(args.weight):.2f} lbs")
        else:
            print(f"{args.weight} lbs = {UnitConverter.lbs_to_kg(args.weight):.2f} kg")
    elif args.cmd == "distance":
        value = UnitConverter.convert_distance(args.value, args.from_unit, args.to_unit)
        print(f"{args.value} {args.from_unit} = {value:.3f} {args.to_unit}")
    elif args.cmd == "pace":
        seconds = PaceCalculator.parse_time_to_seconds(args.time)
        pace_seconds = PaceCalculator.calculate_pace(args.distance, seconds)
        print(f"Pace: {PaceCalculator.format_seconds_to_time(pace_seconds)} per unit")


if __name__ == "__main__":
    main()
