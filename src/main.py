#!/usr/bin/env python3
"""
CRM Audience Rules - Main entry point
"""
import argparse
import json
import logging
import os
import sys

import structlog
from dateutil.parser import isoparse
from dotenv import load_dotenv
from pydantic import ValidationError

# Environment must be loaded before the database engine is configured
load_dotenv()

from src.crm import AuthSession, CrmClient, CrmError, User
from src.database import DatabaseSessionStore, init_db
from src.rules import (
    CampaignData,
    ConditionGroup,
    RuleError,
    RuleSession,
    SegmentData,
    default_rule,
    parse_rules,
    tree_to_segment_rules,
)
from src.rules.convert import rules_to_json, to_tree

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = structlog.get_logger()

# Quiet the HTTP connection pool
logging.getLogger('urllib3').setLevel(logging.WARNING)


def load_rules_file(path: str = None):
    """Load a rule in either wire shape from a JSON file"""
    rules_file = path or os.getenv('RULES_FILE', 'config/rules.json')
    if not os.path.exists(rules_file):
        logger.info("No rules file found, using the default rule", path=rules_file)
        return default_rule()
    with open(rules_file, 'r') as f:
        rule = parse_rules(json.load(f))
    logger.info("Loaded rules", path=rules_file, shape=type(rule).__name__)
    return rule


def write_rules_file(rule, path: str = None) -> None:
    text = rules_to_json(rule, indent=2)
    if path:
        with open(path, 'w') as f:
            f.write(text + '\n')
        logger.info("Wrote rules", path=path)
    else:
        print(text)


def build_client() -> CrmClient:
    init_db()
    auth = AuthSession(DatabaseSessionStore())
    if not auth.load():
        logger.warning("Not logged in, requests will be sent without a token")
    return CrmClient(auth=auth)


def cmd_login(args) -> None:
    init_db()
    auth = AuthSession(DatabaseSessionStore())
    user = User(id=args.user_id, name=args.name, email=args.email)
    expires_at = isoparse(args.expires_at) if args.expires_at else None
    auth.login(args.token, user, expires_at=expires_at)


def cmd_logout(args) -> None:
    init_db()
    AuthSession(DatabaseSessionStore()).logout()
    logger.info("Logged out")


def cmd_preview(args) -> None:
    client = build_client()
    if args.segment_id:
        session = RuleSession(preview=lambda rules: client.segments.preview_audience(args.segment_id))
    else:
        rule = load_rules_file(args.rules_file)
        # Condition group trees go to the campaign preview, flat lists to the segment preview
        if isinstance(rule, ConditionGroup):
            preview = client.campaigns.preview_audience
        else:
            preview = lambda rules: client.segments.preview_audience(rules=rules)
        session = RuleSession(rule, preview=preview)
    size = session.preview()
    logger.info("Audience size", customers=size)


def cmd_suggest(args) -> None:
    client = build_client()
    response = client.ai.natural_language_to_rules(args.text)
    session = RuleSession()
    session.load(response.get('data', response))
    write_rules_file(session.rule, args.output)


def cmd_convert(args) -> None:
    rule = load_rules_file(args.rules_file)
    if args.to == 'tree':
        converted = to_tree(rule)
    else:
        converted = tree_to_segment_rules(rule) if isinstance(rule, ConditionGroup) else rule
    write_rules_file(converted, args.output)


def cmd_create_segment(args) -> None:
    client = build_client()
    rule = load_rules_file(args.rules_file)

    def submit(rules):
        return client.segments.create(SegmentData(
            name=args.name,
            description=args.description,
            rules=rules,
            is_dynamic=not args.static,
            tags=args.tag or [],
        ))

    segment_id = RuleSession(rule, submit=submit).submit()
    logger.info("Created segment", id=segment_id)


def cmd_create_campaign(args) -> None:
    client = build_client()
    response = client.campaigns.create(CampaignData(
        name=args.name,
        segment_id=args.segment_id,
        message_template=args.message,
        objective=args.objective,
        tags=args.tag or [],
    ))
    logger.info("Created campaign", response=response)


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='CRM Audience Rules')
    commands = parser.add_subparsers(dest='command', required=True)

    login = commands.add_parser('login', help='Store an API token')
    login.add_argument('--token', required=True)
    login.add_argument('--user-id', required=True)
    login.add_argument('--name', required=True)
    login.add_argument('--email', required=True)
    login.add_argument('--expires-at', help='ISO 8601 expiry; read from the token when omitted')
    login.set_defaults(func=cmd_login)

    logout = commands.add_parser('logout', help='Forget the stored token')
    logout.set_defaults(func=cmd_logout)

    preview = commands.add_parser('preview', help='Preview the audience size of a rule file or saved segment')
    preview.add_argument('--rules-file')
    preview.add_argument('--segment-id')
    preview.set_defaults(func=cmd_preview)

    suggest = commands.add_parser('suggest', help='Turn a natural language description into rules')
    suggest.add_argument('text')
    suggest.add_argument('--output', help='File to write the rules to; printed when omitted')
    suggest.set_defaults(func=cmd_suggest)

    convert = commands.add_parser('convert', help='Convert a rule file between the tree and flat shapes')
    convert.add_argument('--to', choices=['tree', 'flat'], required=True)
    convert.add_argument('--rules-file')
    convert.add_argument('--output')
    convert.set_defaults(func=cmd_convert)

    segment = commands.add_parser('create-segment', help='Create a segment from a rule file')
    segment.add_argument('--name', required=True)
    segment.add_argument('--description')
    segment.add_argument('--rules-file')
    segment.add_argument('--tag', action='append')
    segment.add_argument('--static', action='store_true', help='Freeze membership instead of re-evaluating')
    segment.set_defaults(func=cmd_create_segment)

    campaign = commands.add_parser('create-campaign', help='Create a campaign for a saved segment')
    campaign.add_argument('--name', required=True)
    campaign.add_argument('--segment-id', required=True)
    campaign.add_argument('--message', required=True)
    campaign.add_argument('--objective')
    campaign.add_argument('--tag', action='append')
    campaign.set_defaults(func=cmd_create_campaign)

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the CRM Audience Rules CLI"""
    args = parse_args(argv)
    try:
        args.func(args)
    except (CrmError, RuleError, ValidationError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
