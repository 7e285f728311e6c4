"""
CLI entry point for the CloudAEye notifier. Run it from a Jenkins post-build step:

    post { always { sh 'cloudaeye-notify --result ${currentBuild.currentResult}' } }

Wires the pipeline: read run -> build payload -> send to CloudAEye.
"""

import argparse
import json
import logging
import os
import sqlite3
import sys

import requests

from config import FormValidation, NotifierConfig, check_tenant_key, check_token, resolve_config
from ingest.jenkins import JenkinsApiError, JenkinsClient, JenkinsRun
from notify import connection
from notify.notifier import CloudAEyeNotifier, PayloadAssemblyError
from runs.environment import EnvironmentRun
from storage.cache import BuildCache
from storage.credentials import CredentialStore, CredentialStoreError
from storage.retry import configure_retry

logger = logging.getLogger("cloudaeye")


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_jenkins(args):
    """Fill Jenkins connection settings from the step environment when not given on the command line."""
    args.build_url = args.build_url or os.getenv('BUILD_URL', '')
    args.jenkins_url = args.jenkins_url or os.getenv('JENKINS_URL', '')
    args.jenkins_user = args.jenkins_user or os.getenv('JENKINS_USER', '')
    args.jenkins_token = args.jenkins_token or os.getenv('JENKINS_API_TOKEN', '')
    result = args.result or os.getenv('BUILD_RESULT', '')
    args.result = result.strip().upper() or None


def _show_config(config: NotifierConfig):
    _print_json({
        'tenant_key': '****' if not config.tenant_key.is_empty() else '',
        'token': '****' if not config.token.is_empty() else '',
        'checks': {
            'tenant_key': str(check_tenant_key(config.tenant_key)),
            'token': str(check_token(config.token)),
        },
    })


def _test_connection(config: NotifierConfig) -> int:
    res = connection.test_connection(config.tenant_key, config.token)
    print(res.message)
    return 0 if res.kind == FormValidation.OK else 1


def _handle_config_actions(args, store: CredentialStore) -> int:
    """Process configuration flags and return the exit code."""
    config = resolve_config(args.tenant_key, args.token, store=store)
    if args.save_config:
        config.validate()
        store.save(config)
        print(f"Saved CloudAEye credentials to {store.path}")
    if args.show_config:
        _show_config(config)
    if args.test_connection:
        return _test_connection(config)
    return 0


def build_run(args, cache=None):
    """Return the run being notified: read from the Jenkins API, or from the environment alone."""
    environ = dict(os.environ)
    if args.no_api or not (args.build_url and args.jenkins_url):
        if not args.no_api:
            logger.warning("BUILD_URL or JENKINS_URL not set; change logs will not be collected")
        return EnvironmentRun(environ, args.result, log_file=args.log_file or None)
    client = JenkinsClient(args.jenkins_url, args.jenkins_user or None, args.jenkins_token or None, cache=cache)
    return JenkinsRun.fetch(client, args.build_url, environ=environ, result=args.result)


def _load_config(args) -> NotifierConfig:
    """Resolve credentials for a notification. A broken credential store falls back to CLI and environment values."""
    try:
        with CredentialStore(args.config_db or None) as store:
            return resolve_config(args.tenant_key, args.token, store=store)
    except (CredentialStoreError, ValueError, OSError, sqlite3.Error) as ex:
        logger.warning("Credential store unavailable, using command line and environment values only : %s", ex)
        return resolve_config(args.tenant_key, args.token)


def run_notification(args, config: NotifierConfig, cache=None) -> int:
    notifier = CloudAEyeNotifier(config, enable_export=not args.disable_export)
    try:
        run = build_run(args, cache)
    except (JenkinsApiError, requests.RequestException, OSError, ValueError) as ex:
        logger.error("Failed to read build %s : %s", args.build_url, ex)
        return 1 if args.strict else 0
    try:
        outcome = notifier.perform(run, dry_run=args.dry_run)
    except PayloadAssemblyError as ex:
        logger.error("%s", ex)
        return 1 if args.strict else 0
    if args.dry_run and outcome is not None:
        _print_json(outcome.to_dict())
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send Jenkins build notifications to CloudAEye")
    parser.add_argument("--result", type=str, default="", help="Build result (SUCCESS, FAILURE, ...). Defaults to env BUILD_RESULT, then the Jenkins API")
    parser.add_argument("--build-url", type=str, default="", help="Build URL (defaults to env BUILD_URL)")
    parser.add_argument("--jenkins-url", type=str, default="", help="Jenkins root URL (defaults to env JENKINS_URL)")
    parser.add_argument("--jenkins-user", type=str, default="", help="Jenkins user for API reads (defaults to env JENKINS_USER)")
    parser.add_argument("--jenkins-token", type=str, default="", help="Jenkins API token (defaults to env JENKINS_API_TOKEN)")
    parser.add_argument("--log-file", type=str, default="", help="Console log file, used together with --no-api")
    parser.add_argument("--no-api", action="store_true", help="Do not call the Jenkins API; describe the run from environment variables only")
    parser.add_argument("--tenant-key", type=str, default="", help="CloudAEye tenant key (overrides env CLOUDAEYE_TENANT_KEY and stored value)")
    parser.add_argument("--token", type=str, default="", help="CloudAEye token (overrides env CLOUDAEYE_TOKEN and stored value)")
    parser.add_argument("--disable-export", action="store_true", help="Skip exporting this run")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload instead of sending it")
    parser.add_argument("--strict", action="store_true", help="Exit non-zero when the payload cannot be assembled")
    parser.add_argument("--cache", type=str, default="", help="Path to SQLite cache of completed build records (optional)")
    parser.add_argument("--config-db", type=str, default="", help="Path to the credential store (defaults to env CLOUDAEYE_CONFIG_DB or ~/.cloudaeye/credentials.db)")
    parser.add_argument("--save-config", action="store_true", help="Persist --tenant-key/--token to the credential store")
    parser.add_argument("--show-config", action="store_true", help="Show which credentials are configured")
    parser.add_argument("--test-connection", action="store_true", help="Ping the CloudAEye endpoint with the configured credentials")
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts for Jenkins API reads (overrides CLOUDAEYE_MAX_RETRIES env)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    if args.max_retries is not None:
        if args.max_retries < 1:
            parser.error("--max-retries must be at least 1")
        configure_retry(max_retries=args.max_retries)
    _resolve_jenkins(args)

    if args.save_config or args.show_config or args.test_connection:
        try:
            with CredentialStore(args.config_db or None) as store:
                return _handle_config_actions(args, store)
        except (CredentialStoreError, ValueError, OSError, sqlite3.Error) as ex:
            logger.error("Credential store error : %s", ex)
            return 1

    config = _load_config(args)

    cache = BuildCache(args.cache) if args.cache else None
    try:
        return run_notification(args, config, cache)
    finally:
        if cache:
            cache.close()


if __name__ == "__main__":
    sys.exit(main())
