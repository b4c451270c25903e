# Run one price tracking cycle from the command line (cron, one-off dyno, etc.)
from app import create_app
from tracker import run_tracking_cycle


def main():
    app = create_app({'SCHEDULER_ENABLED': False})
    with app.app_context():
        summary = run_tracking_cycle()

    print(f"Tracked {summary['tracked_games']} games: "
          f"{summary['inserted']} new snapshots, {summary['alerted']} alerts sent, "
          f"{summary['failed']} failed")
    return 1 if summary['failed'] else 0


if __name__ == '__main__':
    raise SystemExit(main())
