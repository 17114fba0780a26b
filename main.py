#!/usr/bin/env python3
"""
RoleGate -- role-based access control over HTTP Basic authentication.

Usage:
  python main.py encode 'StrongPassword!'
  python main.py encode 'StrongPassword!' --scheme pbkdf2_sha256
  python main.py check paul password /admin
  python main.py serve --port 8080

`check` evaluates one request against the seed users and route rules without
starting a server. Exit status: 0 ALLOW, 1 DENY_FORBIDDEN, 2 DENY_UNAUTHENTICATED.

Environment variables:
  PASSWORD_SCHEME   Default scheme for `encode` (bcrypt or pbkdf2_sha256).
  BCRYPT_ROUNDS     bcrypt cost factor (default 10).
"""

import argparse
import sys

from auth.models import AccessRequest, Credentials, Outcome
from auth.passwords import SUPPORTED_SCHEMES, hash_password
from auth.seed import build_policy

_EXIT_CODES = {
    Outcome.ALLOW: 0,
    Outcome.DENY_FORBIDDEN: 1,
    Outcome.DENY_UNAUTHENTICATED: 2,
}


def cmd_encode(args: argparse.Namespace) -> int:
    try:
        encoded = hash_password(args.password, scheme=args.scheme)
    except ValueError as e:
        print(f"  [!] {e}", file=sys.stderr)
        return 1
    print(encoded)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    policy = build_policy()
    decision = policy.decide(AccessRequest(args.path, Credentials(args.username, args.password)))
    rule = decision.matched_rule.pattern if decision.matched_rule else "-"
    print(f"  {decision.outcome.value}  path={args.path}  rule={rule}")
    return _EXIT_CODES[decision.outcome]


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolegate",
        description="Role-based access control over HTTP Basic authentication.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_encode = sub.add_parser("encode", help="Print the encoded hash of a password")
    p_encode.add_argument("password")
    p_encode.add_argument("--scheme", choices=sorted(SUPPORTED_SCHEMES), default=None)
    p_encode.set_defaults(func=cmd_encode)

    p_check = sub.add_parser("check", help="Evaluate a request against the seed policy")
    p_check.add_argument("username")
    p_check.add_argument("password")
    p_check.add_argument("path")
    p_check.set_defaults(func=cmd_check)

    p_serve = sub.add_parser("serve", help="Run the HTTP server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
