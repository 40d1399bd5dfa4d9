# create_voucher.py: add a discount voucher
import argparse
from datetime import datetime

from registrar import create_app, db
from registrar.catalog import ACTIVITY_KINDS
from registrar.models.voucher import Voucher
from registrar.utils.datetime_utils import localize_naive_datetime
from registrar.utils.money import quantize


def _local_datetime(value):
    return localize_naive_datetime(datetime.fromisoformat(value))


def main():
    parser = argparse.ArgumentParser(description="Create a discount voucher")
    parser.add_argument("code")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--percentage", type=int)
    mode.add_argument("--amount")
    parser.add_argument("--applies-to", choices=ACTIVITY_KINDS)
    parser.add_argument("--description")
    parser.add_argument("--valid-from", type=_local_datetime,
                        help="local time, e.g. 2026-01-01T00:00")
    parser.add_argument("--valid-until", type=_local_datetime)
    parser.add_argument("--max-uses", type=int)
    args = parser.parse_args()

    if args.percentage is not None and not 0 < args.percentage <= 100:
        parser.error("--percentage must be between 1 and 100")

    app = create_app()
    with app.app_context():
        code = args.code.strip().upper()
        if Voucher.query.filter_by(code=code).first():
            print(f"Voucher {code} already exists")
            return 1

        voucher = Voucher(
            code=code,
            description=args.description,
            percentage=args.percentage,
            amount=quantize(args.amount) if args.amount is not None else None,
            applies_to=args.applies_to,
            valid_from=args.valid_from,
            valid_until=args.valid_until,
            max_uses=args.max_uses,
        )
        db.session.add(voucher)
        db.session.commit()
        print(f"Voucher {voucher.code} created: {voucher.to_dict()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
