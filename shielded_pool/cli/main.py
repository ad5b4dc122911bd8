"""
Shielded Pool CLI - Command Line Interface

Main entry point for all CLI commands.
"""

import json
from pathlib import Path
from typing import List

import click

from shielded_pool.utils.logger import setup_logging


def _open_pool(ctx):
    """Build a pool over the persistent store using the genesis config."""
    from shielded_pool.core.config import load_config
    from shielded_pool.core.state import ShieldedPool
    from shielded_pool.core.storage import StateStore
    from shielded_pool.core.verifier import VerificationGate, make_backend

    genesis = load_config(ctx.obj["config"], env_file=ctx.obj["env_file"])
    config = genesis.to_pool_config()
    gate = VerificationGate(make_backend(genesis.verifier), cache_size=config.verification_cache_size)
    store = StateStore.open(ctx.obj["data_dir"])
    return genesis, ShieldedPool(store, gate, config)


def _read_hex_list(path: Path) -> List[bytes]:
    """Read a JSON list of hex strings, or one hex string per line."""
    from shielded_pool.crypto import hex_to_bytes

    text = path.read_text().strip()
    if text.startswith("["):
        items = json.loads(text)
    else:
        items = [line.strip() for line in text.splitlines() if line.strip()]
    return [hex_to_bytes(item) for item in items]


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default="~/.shielded-pool", help="Data directory")
@click.option("--config", "config_path", default=None, help="Genesis JSON file")
@click.option("--env-file", default=".env", help="Environment overrides file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, config_path, env_file):
    """Shielded Pool - on-chain verifier and ledger for shielded value"""
    import logging

    data_dir = Path(data_dir).expanduser()
    level = logging.DEBUG if debug else logging.INFO
    setup_logging(level=level, log_dir=str(data_dir / "logs"), log_to_file=True)

    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["config"] = config_path
    ctx.obj["env_file"] = env_file


# =============================================================================
# Genesis & State Commands
# =============================================================================


@cli.command("init")
@click.pass_context
def init(ctx):
    """Install genesis verifying keys and endowments"""
    from shielded_pool.core.errors import ShieldedPoolError
    from shielded_pool.crypto import bytes_to_hex

    genesis, pool = _open_pool(ctx)
    base_dir = Path(ctx.obj["config"]).parent if ctx.obj["config"] else Path(".")
    keys = genesis.load_verifying_keys(base_dir)
    if keys is None:
        raise click.ClickException("Genesis defines no deposit_vk/transfer_vk")

    try:
        pool.initialize(keys)
    except ShieldedPoolError as e:
        raise click.ClickException(f"{e.code}: {e}")

    with pool.store.transaction():
        for account, amount in genesis.endowment_accounts():
            pool.balances.set_balance(account, amount)

    click.echo(f"✓ Pool initialized at {ctx.obj['data_dir']}")
    click.echo(f"  Verifier: {genesis.verifier}")
    click.echo(f"  Depth: {pool.config.tree_depth}, window: {pool.config.root_history_size}")
    click.echo(f"  Reserve account: {bytes_to_hex(pool.reserve_account)}")
    click.echo(f"  Empty root: {bytes_to_hex(pool.current_root)}")
    click.echo(f"  Endowments: {len(genesis.endowments)}")


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="Machine-readable output")
@click.pass_context
def status(ctx, as_json):
    """Show pool state"""
    from shielded_pool.crypto import bytes_to_hex

    _, pool = _open_pool(ctx)
    snap = pool.snapshot()
    data = {
        "initialized": pool.is_initialized,
        "root": bytes_to_hex(snap.root),
        "leaf_count": snap.leaf_count,
        "nullifier_count": snap.nullifier_count,
        "reserve_balance": snap.reserve_balance,
        "window_size": snap.window_size,
        "state_digest": bytes_to_hex(pool.state_digest()),
    }

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("Shielded Pool Status")
    click.echo("-" * 40)
    for key, value in data.items():
        click.echo(f"  {key}: {value}")


@cli.command("apply")
@click.argument("batch_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--prevalidate", is_flag=True, help="Verify proofs in parallel first")
@click.pass_context
def apply(ctx, batch_file, prevalidate):
    """Apply a JSON batch of calls in order"""
    from shielded_pool.core.batch import BatchProcessor, call_from_dict
    from shielded_pool.core.errors import ShieldedPoolError

    _, pool = _open_pool(ctx)
    raw = json.loads(batch_file.read_text())
    if not isinstance(raw, list):
        raise click.ClickException("Batch file must contain a JSON list of calls")

    try:
        calls = [call_from_dict(item) for item in raw]
        result = BatchProcessor(pool).apply_batch(calls, prevalidate=prevalidate)
    except ShieldedPoolError as e:
        raise click.ClickException(f"{e.code}: {e}")

    click.echo(json.dumps(result.to_dict(), indent=2))


# =============================================================================
# Tree Tools
# =============================================================================


@cli.command("empty-roots")
@click.option("--depth", default=32, type=click.IntRange(1, 64), help="Tree depth")
def empty_roots(depth):
    """Print the empty-subtree constant for each level"""
    from shielded_pool.core.state import ZERO_HASHES
    from shielded_pool.crypto import bytes_to_hex

    for level in range(depth + 1):
        click.echo(f"{level:2d} {bytes_to_hex(ZERO_HASHES[level])}")


@cli.command("root")
@click.argument("leaves_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--depth", default=32, type=click.IntRange(1, 64), help="Tree depth")
def root(leaves_file, depth):
    """Recompute the root of a commitment sequence"""
    from shielded_pool.core.errors import ShieldedPoolError
    from shielded_pool.core.state import reference_root
    from shielded_pool.crypto import bytes_to_hex

    leaves = _read_hex_list(leaves_file)
    try:
        value = reference_root(leaves, depth)
    except ShieldedPoolError as e:
        raise click.ClickException(f"{e.code}: {e}")
    click.echo(bytes_to_hex(value))


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run deposit / withdraw / transact against an in-memory mock pool"""
    from shielded_pool.core.errors import ShieldedPoolError
    from shielded_pool.core.state import ShieldedPool
    from shielded_pool.core.storage import StateStore
    from shielded_pool.core.verifier import (
        DEPOSIT_LAYOUT,
        TRANSACT_LAYOUT,
        WITHDRAW_LAYOUT,
        MockVerifier,
        VerificationGate,
        VerifyingKeys,
        decode_public_inputs,
        encode_public_inputs,
    )
    from shielded_pool.crypto import bytes_to_hex, hash_account, hash_to_field

    def prove(vk, layout, values):
        inputs = encode_public_inputs(layout, values)
        return MockVerifier.prove(vk, decode_public_inputs(layout, inputs).elements), inputs

    click.echo("=" * 60)
    click.echo("  SHIELDED POOL - DEMO (mock verifier)")
    click.echo("=" * 60)
    click.echo()

    keys = VerifyingKeys(deposit=b"demo-deposit-circuit", transfer=b"demo-transfer-circuit")
    pool = ShieldedPool(StateStore.in_memory(), VerificationGate(MockVerifier()))
    pool.initialize(keys)

    alice = b"\xaa" * 32
    bob = b"\xbb" * 32
    carol = b"\xcc" * 32
    pool.balances.set_balance(alice, 10_000)
    click.echo(f"🏛️  Genesis root: {bytes_to_hex(pool.current_root)[:18]}...")
    click.echo(f"  ✓ Alice balance: {pool.balances.balance_of(alice)}")
    click.echo()

    click.echo("💰 Alice deposits 1000 and 500...")
    for n, amount in ((1, 1000), (2, 500)):
        commitment = hash_to_field(b"demo-note-%d" % n)
        proof, inputs = prove(keys.deposit, DEPOSIT_LAYOUT, [amount, commitment])
        event = pool.deposit(alice, proof, inputs, amount)
        click.echo(f"  ✓ leaf {event.leaf_index}, root {bytes_to_hex(pool.current_root)[:18]}..., reserve {pool.reserve_balance()}")
    click.echo()

    click.echo("🔀 Private transfer of both notes...")
    root_value = pool.current_root
    proof, inputs = prove(keys.transfer, TRANSACT_LAYOUT, [
        root_value, hash_to_field(b"demo-nf-1"), hash_to_field(b"demo-nf-2"),
        hash_to_field(b"demo-note-3"), hash_to_field(b"demo-note-4"),
    ])
    pool.transact(carol, proof, inputs)
    click.echo(f"  ✓ 2 nullifiers spent, {pool.tree.next_index} leaves, reserve {pool.reserve_balance()}")
    click.echo()

    click.echo("🏧 Bob withdraws 1000...")
    withdraw_values = [pool.current_root, hash_to_field(b"demo-nf-3"), hash_account(bob), 1000, 0]
    proof, inputs = prove(keys.transfer, WITHDRAW_LAYOUT, withdraw_values)
    pool.withdraw(bob, proof, inputs, bob, 1000)
    click.echo(f"  ✓ Bob balance {pool.balances.balance_of(bob)}, reserve {pool.reserve_balance()}")

    click.echo("🚫 Replaying the same withdrawal...")
    try:
        pool.withdraw(bob, proof, inputs, bob, 1000)
    except ShieldedPoolError as e:
        click.echo(f"  ✓ Rejected: {e.code}")
    click.echo()

    click.echo("📊 Final state:")
    snap = pool.snapshot()
    click.echo(f"  Leaves: {snap.leaf_count}, nullifiers: {snap.nullifier_count}, reserve: {snap.reserve_balance}")
    click.echo(f"  Events: {len(pool.events)}")
    click.echo(f"  State digest: {bytes_to_hex(pool.state_digest())[:18]}...")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
