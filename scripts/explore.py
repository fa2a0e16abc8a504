#!/usr/bin/env python3
"""
Command-line explorer for the Neurosynth API.

Examples:
    python scripts/explore.py terms --filter pain
    python scripts/explore.py related amygdala
    python scripts/explore.py studies "pain AND NOT visual" --from 2005 --sort asc
    python scripts/explore.py interactive
"""

import argparse
import logging
import os
import sys

# Add the project root directory to sys.path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from core.config import settings
from services.controller import ExplorerController, Panel, PanelState

INTERACTIVE_HELP = """Commands:
  t <text>      type into the related-terms box (filters terms, live search)
  r [term]      search related terms now
  q <text>      type into the study query box (live search once complete)
  s [query]     search studies now
  add <term>    append a term to the query and search
  sym <symbol>  insert AND / OR / NOT / ( / ) / " into the query
  f <from> <to> [asc|desc]   set year filters ("-" for none)
  help, quit"""


def print_panel(name: str, panel: Panel, limit: int = 50) -> None:
    print(f"\n--- {name} ---")
    if panel.state is PanelState.ERROR:
        print(f"Error: {panel.message}")
        print("Possible causes: network or server error.")
        return
    if panel.state is not PanelState.READY:
        if panel.message:
            print(panel.message)
        return
    if panel.message:
        print(panel.message)
    for item in panel.items[:limit]:
        if hasattr(item, "title"):
            year = f" ({item.year})" if item.year else ""
            print(f"- {item.title}{year}")
            if item.authors:
                print(f"    Authors: {item.authors}")
            if item.journal:
                print(f"    Journal: {item.journal}")
        else:
            print(f"- {item}")
    if len(panel.items) > limit:
        print(f"... {len(panel.items) - limit} more")


def _year_arg(value: str):
    return None if value in ("", "-") else int(value)


def run_interactive(controller: ExplorerController) -> None:
    print(INTERACTIVE_HELP)
    controller.load_terms()
    print(f"Loaded {len(controller.all_terms)} terms.")
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue
        command, _, rest = line.partition(" ")
        if command in ("quit", "exit"):
            break
        if command == "help":
            print(INTERACTIVE_HELP)
        elif command == "t":
            controller.on_related_input(rest)
        elif command == "r":
            controller.submit_related(rest or None)
        elif command == "q":
            controller.on_query_input(rest)
        elif command == "s":
            controller.submit_query(rest or None)
        elif command == "add":
            controller.add_related_term(rest.strip())
        elif command == "sym":
            print(f"Query: {controller.insert_query_symbol(rest.strip())}")
        elif command == "f":
            parts = rest.split()
            try:
                year_from = _year_arg(parts[0]) if parts else None
                year_to = _year_arg(parts[1]) if len(parts) > 1 else None
            except ValueError:
                print("Years must be integers or '-'")
                continue
            sort = parts[2].lower() if len(parts) > 2 else None
            controller.set_filters(year_from, year_to, sort)
        else:
            print(f"Unknown command: {command}")


def main():
    parser = argparse.ArgumentParser(description="Explore Neurosynth terms and studies.")
    parser.add_argument("--limit", type=int, default=50, help="Max items to print per panel")
    subparsers = parser.add_subparsers(dest="command", required=True)

    terms_parser = subparsers.add_parser("terms", help="List all terms")
    terms_parser.add_argument("--filter", type=str, default="", help="Case-insensitive substring filter")

    related_parser = subparsers.add_parser("related", help="List terms related to TERM")
    related_parser.add_argument("term", type=str)

    studies_parser = subparsers.add_parser("studies", help="Search studies with a boolean query")
    studies_parser.add_argument("query", type=str)
    studies_parser.add_argument("--from", dest="year_from", type=int, default=None, help="Earliest year, inclusive")
    studies_parser.add_argument("--to", dest="year_to", type=int, default=None, help="Latest year, inclusive")
    studies_parser.add_argument("--sort", choices=["asc", "desc"], default="desc")

    subparsers.add_parser("interactive", help="Line-driven explorer session")

    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL)

    if args.command == "interactive":
        # Panels are printed as they change, including from debounce timers
        controller = ExplorerController(on_change=lambda name, panel: print_panel(name, panel, args.limit))
        try:
            run_interactive(controller)
        finally:
            controller.close()
        return

    controller = ExplorerController()
    if args.command == "terms":
        controller.load_terms()
        if args.filter and controller.terms_panel.state is not PanelState.ERROR:
            controller.filter_term_list(args.filter)
        panel = controller.terms_panel
    elif args.command == "related":
        panel = controller.submit_related(args.term)
    else:
        controller.set_filters(args.year_from, args.year_to, args.sort)
        panel = controller.submit_query(args.query)

    print_panel(args.command, panel, args.limit)
    if panel.state is PanelState.ERROR:
        sys.exit(1)


if __name__ == "__main__":
    main()
