"""
Command-line interface for Health Maps.

Commands:
- serve: Start the API server
- plan: Rank routes between two locations and print the picks
"""
import argparse
import asyncio
import json
import sys

from health_maps import server, utils
from health_maps.data_loader import build_planner, create_http_client
from health_maps.exceptions import HealthMapsError


async def _plan(config, start, end):
    async with create_http_client(config) as client:
        planner = build_planner(config, client)
        return await planner.plan(start, end)


def cmd_plan(args):
    """Rank routes between two locations."""
    config = utils.load_config(args.config)
    utils.configure_logging('DEBUG' if args.verbose else 'WARNING')

    try:
        result = asyncio.run(_plan(config, args.start, args.end))
    except HealthMapsError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    print("=" * 50)
    print("Health Maps - Route Ranking")
    print("=" * 50)
    print(f"From: {args.start}")
    print(f"To:   {args.end}")

    picks = [
        ('Fastest', result.fastest),
        ('Healthiest', result.healthiest),
        ('Second healthiest', result.second_healthiest),
    ]
    for label, route in picks:
        print(f"\n{label}: {route.candidate.name} ({route.id})")
        print(f"   Duration: {route.duration_mins} min")
        print(f"   Distance: {route.distance_km:.1f} km")
        print(f"   Avg PM2.5: {route.avg_pm25:.1f} ug/m3")
        print(f"   Destination temp: {route.temp_celsius:.1f} C")
        print(f"   Health Score: {route.health_score}/100")

    return 0


def cmd_serve(args):
    """Start the API server."""
    print("=" * 50)
    print("Health Maps - API Server")
    print("=" * 50)
    print()
    print("Press Ctrl+C to stop")
    print()

    server.run_server(config_path=args.config, host=args.host, port=args.port)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Health Maps - Driving routes ranked by health score',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # serve
    serve_parser = subparsers.add_parser('serve', help='Start API server')
    serve_parser.add_argument('--host', default=None, help='Server host')
    serve_parser.add_argument('--port', type=int, default=None, help='Server port')
    serve_parser.add_argument('--config', default=utils.DEFAULT_CONFIG_PATH,
                              help='Path to config file')

    # plan
    plan_parser = subparsers.add_parser('plan', help='Rank routes between two locations')
    plan_parser.add_argument('--start', required=True,
                             help='Origin as a place name or "lat, lon"')
    plan_parser.add_argument('--end', required=True,
                             help='Destination as a place name or "lat, lon"')
    plan_parser.add_argument('--config', default=utils.DEFAULT_CONFIG_PATH,
                             help='Path to configuration file')
    plan_parser.add_argument('--json', action='store_true',
                             help='Print the API response body instead of a summary')
    plan_parser.add_argument('--verbose', action='store_true',
                             help='Show pipeline logs')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'serve':
        return cmd_serve(args)
    elif args.command == 'plan':
        return cmd_plan(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
