"""CLI: command-line interface for projreview."""

import argparse
import sys
from datetime import datetime

from projreview.app import App
from projreview.errors import ConstructionError, NotFoundError, ParseError
from projreview.output import format_project_line, format_project_list
from projreview.queue import unique_next_actions


def cmd_scan(args, app: App):
    print(f"Scanning {app.notes_dir}...")
    projects = app.scan()
    print(f"Indexed {len(projects)} project(s)")
    app.close()


def cmd_list(args, app: App):
    if args.finished:
        app.config.display_finished = True
    if args.due:
        app.config.display_only_due = True
    projects = app.list_projects(args.tag or "")
    if not projects:
        print("No projects to show.")
    else:
        print(format_project_list(projects, app.config, "markdown" if args.markdown else "list"))
    app.close()


def cmd_next(args, app: App):
    projects = app.next_projects(args.n)
    if not projects:
        print("No projects ready for review.")
    for p in unique_next_actions(projects):
        print(format_project_line(p, app.config))
        print(f"\t{p.filename}")
    app.close()


def cmd_status(args, app: App):
    stats = app.status()
    generated = stats["generated_at"]
    generated_str = (datetime.fromtimestamp(generated).strftime("%Y-%m-%d %H:%M")
                     if generated else "never")

    print(f"Projects:      {stats['total']} total")
    print(f"Active:        {stats['active']} ({stats['paused']} paused)")
    print(f"Finished:      {stats['completed']} completed, {stats['cancelled']} cancelled")
    print(f"Ready now:     {stats['ready']}")
    print(f"Index updated: {generated_str}")
    app.close()


def _run_action(args, app: App):
    """Dispatch one of the note-changing commands and report the result."""
    try:
        if args.command == "finish":
            project = app.finish_review(args.file)
            message = "Review finished"
        elif args.command == "skip":
            project = app.skip_review(args.file, args.when)
            message = "Review skipped"
        elif args.command == "interval":
            project = app.set_review_interval(args.file, args.spec)
            message = f"Review interval set to {args.spec}"
        elif args.command == "complete":
            project = app.complete_project(args.file)
            message = "Completed"
        elif args.command == "cancel":
            project = app.cancel_project(args.file)
            message = "Cancelled"
        elif args.command == "pause":
            project = app.toggle_pause_project(args.file, args.comment or "")
            message = "Paused" if project.is_paused else "Resumed"
        else:
            project = app.add_progress(args.file, args.comment, args.percent)
            message = "Progress added"
    except (ParseError, NotFoundError, ConstructionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        app.close()
        sys.exit(1)

    print(f"{message}: {project.title}")
    if project.next_review_date_str and project.is_active and not project.is_paused:
        print(f"Next review: {project.next_review_date_str}")
    app.close()


def main():
    parser = argparse.ArgumentParser(prog="projreview", description="Project Review Manager")
    parser.add_argument("--notes-dir", help="Folder of project notes (default: settings or cwd)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("scan", help="Rebuild the project index from the notes")

    p_list = subparsers.add_parser("list", help="List projects in display order")
    p_list.add_argument("--tag", help="Only projects with this tag (e.g. #area)")
    p_list.add_argument("--finished", action="store_true", help="Include completed/cancelled")
    p_list.add_argument("--due", action="store_true", help="Only projects ready for review")
    p_list.add_argument("--markdown", action="store_true", help="Markdown output")

    p_next = subparsers.add_parser("next", help="Show the next project(s) to review")
    p_next.add_argument("-n", type=int, default=1, help="How many (0 = all ready)")

    subparsers.add_parser("status", help="Show project counts")

    p_finish = subparsers.add_parser("finish", help="Mark a project as reviewed today")
    p_finish.add_argument("file", help="Note filename, relative to the notes folder")

    p_skip = subparsers.add_parser("skip", help="Put off the next review")
    p_skip.add_argument("file")
    p_skip.add_argument("when", help="Interval (e.g. 3d, 2w) or date YYYY-MM-DD")

    p_interval = subparsers.add_parser("interval", help="Set a project's review interval")
    p_interval.add_argument("file")
    p_interval.add_argument("spec", help="Interval, e.g. 1w, 2m, 1q")

    p_complete = subparsers.add_parser("complete", help="Mark a project completed")
    p_complete.add_argument("file")

    p_cancel = subparsers.add_parser("cancel", help="Mark a project cancelled")
    p_cancel.add_argument("file")

    p_pause = subparsers.add_parser("pause", help="Pause or resume a project")
    p_pause.add_argument("file")
    p_pause.add_argument("--comment", help="Reason, recorded as a progress line")

    p_progress = subparsers.add_parser("progress", help="Add a progress line")
    p_progress.add_argument("file")
    p_progress.add_argument("comment")
    p_progress.add_argument("--percent", type=int, help="Percent complete (0-100)")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    app = App(notes_dir=args.notes_dir)
    if not app.data_dir.exists():
        app.data_dir.mkdir(parents=True, exist_ok=True)
        print(f"Created data directory: {app.data_dir}")

    try:
        if args.command == "scan":
            cmd_scan(args, app)
        elif args.command == "list":
            cmd_list(args, app)
        elif args.command == "next":
            cmd_next(args, app)
        elif args.command == "status":
            cmd_status(args, app)
        else:
            _run_action(args, app)
    except NotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
