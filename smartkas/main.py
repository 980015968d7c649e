"""Command line entry point: one detection pass"""

import argparse
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables before anything reads them
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

from smartkas.app import build_record_store, build_services
from smartkas.utils.config_loader import load_config
from smartkas.utils.logging import get_logger

logger = get_logger(__name__)


def main(argv: Optional[list] = None) -> int:
    """Run detection once, for every due business or a single one"""
    parser = argparse.ArgumentParser(description="SmartKas anomaly detection run")
    parser.add_argument("--config", help="Path to settings YAML (default: config/settings.yaml)")
    parser.add_argument("--business-id", help="Scan only this business, ignoring the recheck interval")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    services = build_services(config, build_record_store(config))

    try:
        if args.business_id:
            anomalies_found = services.orchestrator.run_detection_for_business(args.business_id)
        else:
            anomalies_found = services.orchestrator.run_detection()
    finally:
        services.orchestrator.shutdown()

    logger.info("Anomaly detection complete", anomalies_found=anomalies_found)
    print(f"anomaliesFound: {anomalies_found}")
    return anomalies_found


if __name__ == "__main__":
    main()
