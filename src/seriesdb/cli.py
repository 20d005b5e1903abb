#!/usr/bin/env python3
"""seriesdb CLI for inspecting series data."""

import argparse

import questionary
from rich.console import Console
from rich.table import Table

from seriesdb import db
from seriesdb.dataset import DatasetRepository
from seriesdb.errors import SeriesDbError
from seriesdb.logger import setup_logger
from seriesdb.query import Query
from seriesdb.series import SeriesService
from seriesdb.value import Data

console = Console()


def select_dataset() -> str | None:
    """Prompt the user to select a dataset from the published list."""
    with db.get_connection() as conn:
        datasets = DatasetRepository().list_published(conn)
    if not datasets:
        console.print("[red]No datasets found.[/]")
        return None
    return questionary.select(
        "Select a dataset:",
        choices=[
            questionary.Choice(
                title=f"{d.id} {d.identifier or ''} ({d.value_type.value})", value=str(d.id)
            )
            for d in datasets
        ],
    ).ask()


def build_query(args: argparse.Namespace) -> Query:
    params = {
        "timespan": args.timespan,
        "resultTime": args.result_time,
        "allResultTimes": args.all_result_times,
        "expanded": getattr(args, "expanded", False),
        "showTimeIntervals": getattr(args, "show_time_intervals", False),
        "locale": args.locale,
        "matchDomainIds": args.match_domain_ids,
    }
    if getattr(args, "bbox", None):
        params["bbox"] = args.bbox
    return Query.from_params(params)


def print_values(title: str, data: Data) -> None:
    table = Table(title=title)
    table.add_column("Time")
    table.add_column("Value", justify="right")
    table.add_column("Result time")
    for value in data.values:
        when = str(value.timestamp)
        if value.timestart is not None:
            when = f"{value.timestart} / {value.timestamp}"
        table.add_row(when, str(value.value), str(value.result_time or ""))
    console.print(table)


def show_data(service: SeriesService, dataset_id: str, query: Query, csv_path: str | None = None):
    """Print the values of a dataset, plus expanded metadata when requested."""
    data = service.get_data(dataset_id, query)
    if csv_path:
        data.to_frame().to_csv(csv_path, index=False)
        console.print(f"[green]Wrote {len(data)} values to {csv_path}[/]")
    if not data.values:
        console.print(f"[yellow]No values for dataset {dataset_id}.[/]")
    else:
        print_values(f"Dataset {dataset_id}", data)

    if data.metadata is None:
        return
    before = data.metadata.value_before_timespan
    after = data.metadata.value_after_timespan
    console.print(f"Value before timespan: {before.to_dict() if before else '-'}")
    console.print(f"Value after timespan: {after.to_dict() if after else '-'}")
    for ref_id, reference in data.metadata.reference_values.items():
        print_values(f"Reference {ref_id}", reference)


def show_references(service: SeriesService, dataset_id: str, query: Query):
    """Print the label and last value of each reference dataset."""
    dataset = service.get_dataset(dataset_id, query)
    references = service.get_reference_values(dataset, query)
    if not references:
        console.print(f"[yellow]Dataset {dataset_id} has no reference values.[/]")
        return
    table = Table(title=f"References of dataset {dataset_id}")
    table.add_column("Reference")
    table.add_column("Label")
    table.add_column("Last value", justify="right")
    for ref in references:
        last = ref.last_value
        table.add_row(
            ref.reference_value_id,
            ref.label or "",
            f"{last.value} @ {last.timestamp}" if last else "-",
        )
    console.print(table)


def show_result_times(service: SeriesService, dataset_id: str, query: Query):
    """Print the distinct result times of a dataset."""
    result_times = service.get_result_times(dataset_id, query)
    if not result_times:
        console.print(f"[yellow]No result times for dataset {dataset_id}.[/]")
        return
    for result_time in result_times:
        console.print(result_time)


def main():
    parser = argparse.ArgumentParser(description="seriesdb CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("dataset_id", nargs="?", help="Dataset id (prompted if omitted)")
    common.add_argument("--timespan", help="ISO 8601 interval, e.g. 2024-01-01T00:00Z/2024-01-02T00:00Z")
    common.add_argument("--result-time", help="Pin a result time instead of the latest")
    common.add_argument("--all-result-times", action="store_true", help="Return every version")
    common.add_argument("--locale", default="en")
    common.add_argument("--match-domain-ids", action="store_true", help="Treat ids as domain ids")

    data_parser = subparsers.add_parser("data", parents=[common], help="Show dataset values")
    data_parser.add_argument("--expanded", action="store_true", help="Include expanded metadata")
    data_parser.add_argument("--show-time-intervals", action="store_true")
    data_parser.add_argument("--bbox", help="minx,miny,maxx,maxy")
    data_parser.add_argument("--csv", help="Also write the values to this CSV file")
    subparsers.add_parser("references", parents=[common], help="Show reference values")
    subparsers.add_parser("result-times", parents=[common], help="Show result times")

    args = parser.parse_args()
    setup_logger()

    try:
        dataset_id = args.dataset_id or select_dataset()
        if not dataset_id:
            return
        query = build_query(args)
        service = SeriesService.create()

        if args.command == "data":
            show_data(service, dataset_id, query, args.csv)
        elif args.command == "references":
            show_references(service, dataset_id, query)
        elif args.command == "result-times":
            show_result_times(service, dataset_id, query)
    except SeriesDbError as e:
        console.print(f"[red]{e}[/]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
