import argparse
import os
import sys
from dotenv import load_dotenv

from ..config import AnalyticsConfig
from ..infrastructure.logging_config import configure_logging, layer_logger
from ..infrastructure.memory_repository import InMemoryEventRepository
from ..infrastructure.parquet_archive import ParquetEventArchive
from ..infrastructure.json_snapshot_provider import JsonProjectSnapshotProvider
from ..application.errors import AnalyticsError
from ..application.service import AnalyticsService
from ..domain.errors import DomainError
from .controllers import AnalyticsController

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discovery Analytics CLI")
    parser.add_argument("--events", required=True, help="File NDJSON di eventi di interazione")
    parser.add_argument("--snapshots", default=None, help="File JSON con gli snapshot dei progetti")
    parser.add_argument("--limit", type=int, default=None, help="Numero massimo di risultati")

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--top", type=int, metavar="N", help="Progetti più popolari")
    group.add_argument("--trending", action="store_true", help="Progetti di tendenza")
    group.add_argument("--recommend", metavar="LANG[,LANG]", help="Raccomandazioni per linguaggi preferiti")
    group.add_argument("--health", type=int, metavar="ID", help="Community health di un progetto")
    group.add_argument("--leaderboard", metavar="KIND", help="contributions | reviews | helpful")
    group.add_argument("--engagement", metavar="USER", help="Metriche di engagement di un utente")
    group.add_argument("--community", type=int, metavar="ID", help="Rating, review e commenti di un progetto")
    return parser

def main(argv=None):
    if os.environ.get("TESTING_MODE") != "1":
        load_dotenv()

    config = AnalyticsConfig.from_env()
    configure_logging(config.log_level)

    cli_logger = layer_logger("CLI", "Presentation")
    app_logger = layer_logger("AnalyticsService", "Application")
    infra_logger = layer_logger("Storage", "Infrastructure")

    args = build_parser().parse_args(argv)

    try:
        snapshots_file = args.snapshots or config.snapshots_file
        provider = JsonProjectSnapshotProvider(snapshots_file, logger=infra_logger) if snapshots_file else None
        archive = ParquetEventArchive(config.archive_directory, logger=infra_logger) if config.archive_directory else None

        service = AnalyticsService.create(
            config,
            repository=InMemoryEventRepository(),
            archive=archive,
            snapshot_provider=provider,
            logger=app_logger,
        )
        controller = AnalyticsController(service, cli_logger)

        controller.load_events(args.events)
        service.apply_retention()

        if args.top is not None:
            controller.show_top(args.top)
        elif args.trending:
            controller.show_trending()
        elif args.recommend:
            limit = args.limit if args.limit is not None else config.default_recommendation_limit
            controller.show_recommendations(args.recommend.split(","), limit)
        elif args.health is not None:
            controller.show_health(args.health)
        elif args.leaderboard:
            limit = args.limit if args.limit is not None else config.default_leaderboard_limit
            controller.show_leaderboard(args.leaderboard, limit)
        elif args.engagement:
            controller.show_engagement(args.engagement)
        elif args.community is not None:
            controller.show_community(args.community)

    except (DomainError, AnalyticsError) as e:
        cli_logger.error(f"Operazione non riuscita: {e}")
        sys.exit(2)
    except Exception as e:
        cli_logger.critical(f"Errore fatale imprevisto: {e}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
