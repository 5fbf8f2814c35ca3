"""Command line interface: prove, verify and inspect STARK proofs.

Usage:
    starkfri prove --public 1 1 --output proof.bin
    starkfri verify proof.bin --public 1 1
    starkfri inspect proof.bin --field-modulus 97
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from starkfri.errors import MalformedProofError, StarkError
from starkfri.protocol.parameters import StarkParameters
from starkfri.protocol.proof import from_bytes, proof_to_json, to_bytes
from starkfri.protocol.prover import gen_proof
from starkfri.protocol.verifier import verify_proof_bytes

logger = logging.getLogger(__name__)


def _add_parameter_args(parser: argparse.ArgumentParser, public: bool = True) -> None:
    parser.add_argument('--params', type=Path, help='JSON parameter file (flags below override it)')
    parser.add_argument('--field-modulus', type=int, help='Prime field order')
    parser.add_argument('--trace-length', type=int, help='Trace rows (power of two)')
    parser.add_argument('--blowup-factor', type=int, help='LDE blowup (power of two >= 2)')
    parser.add_argument('--num-fri-queries', type=int, help='FRI query rounds')
    parser.add_argument('--hasher-id', type=str, help='Registered hasher (default sha256)')
    parser.add_argument('--constraint-set', type=str, help='Registered constraint set (default fibonacci)')
    if public:
        parser.add_argument('--public', type=int, nargs='+', required=True, help='Public inputs')


def _load_parameters(args: argparse.Namespace) -> StarkParameters:
    data = {}
    if args.params is not None:
        with open(args.params) as f:
            data.update(json.load(f))
    for name in ('field_modulus', 'trace_length', 'blowup_factor',
                 'num_fri_queries', 'hasher_id', 'constraint_set'):
        value = getattr(args, name)
        if value is not None:
            data[name] = value
    return StarkParameters.from_dict(data)


def cmd_prove(args: argparse.Namespace) -> int:
    parameters = _load_parameters(args)
    proof = gen_proof(parameters, args.public)
    data = to_bytes(proof)
    args.output.write_bytes(data)
    logger.info("wrote %d-byte proof to %s", len(data), args.output)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    parameters = _load_parameters(args)
    result = verify_proof_bytes(args.public, args.proof.read_bytes(), parameters)
    if result.accepted:
        print("ACCEPT")
        return 0
    print(f"REJECT {result.reason}: {result.detail}")
    return 1


def cmd_inspect(args: argparse.Namespace) -> int:
    parameters = _load_parameters(args)
    parameters.validate()
    try:
        proof = from_bytes(args.proof.read_bytes(), parameters.hasher.digest_size, parameters.element_size)
    except MalformedProofError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(proof_to_json(proof), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='starkfri',
        description='Generate and check STARK proofs over a prime field'
    )
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='-v for INFO, -vv for DEBUG logging')
    sub = parser.add_subparsers(dest='command', required=True)

    prove = sub.add_parser('prove', help='Prove an honest trace for the public inputs')
    _add_parameter_args(prove)
    prove.add_argument('--output', type=Path, required=True, help='Where to write the proof bytes')
    prove.set_defaults(func=cmd_prove)

    verify = sub.add_parser('verify', help='Verify a serialized proof')
    _add_parameter_args(verify)
    verify.add_argument('proof', type=Path, help='Proof file')
    verify.set_defaults(func=cmd_verify)

    inspect = sub.add_parser('inspect', help='Print a proof as JSON')
    _add_parameter_args(inspect, public=False)
    inspect.add_argument('proof', type=Path, help='Proof file')
    inspect.set_defaults(func=cmd_inspect)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    try:
        return args.func(args)
    except (StarkError, KeyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
