import os

import click
from rich.console import Console

from ascon_lens.aead import decrypt as aead_decrypt, encrypt as aead_encrypt
from ascon_lens.codec import InputFormat, bytes_to_hex, bytes_to_text, decode_input, hex_to_bytes
from ascon_lens.errors import AsconError, InvalidInput
from ascon_lens.logs import LOG_LEVEL_ENV, configure_logging
from ascon_lens.permutation import MAX_ROUNDS, permute
from ascon_lens.state import AsconState
from ascon_lens.state_snapshot import Phase
from ascon_lens.trace import with_trace
from ascon_lens.ui import trace_table, ui_loop
from ascon_lens.variants import VARIANTS, get_variant

FORMATS = ["text", "hex", "b64"]


def cipher_options(f):
    """Key, nonce, associated data and variant options shared by the cipher commands."""
    options = [
        click.option("--key", "-k", required=True, envvar="ASCON_LENS_KEY", help="Secret key (16 bytes)."),
        click.option("--nonce", "-n", required=True, help="Nonce (16 bytes), unique per message."),
        click.option("--key-format", type=click.Choice(["hex", "text"]), default="hex", show_default=True),
        click.option("--nonce-format", type=click.Choice(["hex", "text"]), default="hex", show_default=True),
        click.option("--ad", "-a", default="", help="Associated data (authenticated, not encrypted)."),
        click.option("--ad-format", type=click.Choice(FORMATS), default="text", show_default=True),
        click.option(
            "--variant", "-v",
            type=click.Choice([v.name for v in VARIANTS.values()], case_sensitive=False),
            default="Ascon-128",
            envvar="ASCON_LENS_VARIANT",
            show_default=True,
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def resolve_inputs(key, nonce, key_format, nonce_format, ad, ad_format, variant):
    return (
        decode_input(key, key_format),
        decode_input(nonce, nonce_format),
        decode_input(ad, ad_format),
        get_variant(variant),
    )


@click.group()
@click.option(
    "--log-level",
    envvar=LOG_LEVEL_ENV,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
def cli(log_level: str):
    configure_logging(log_level)


@cli.command()
@click.argument("message")
@click.option("--format", "-f", "message_format", type=click.Choice(FORMATS), default="text", show_default=True)
@cipher_options
def encrypt(message: str, message_format: InputFormat, key, nonce, key_format, nonce_format, ad, ad_format, variant):
    """Encrypt MESSAGE and print the ciphertext and tag as hex."""
    try:
        key, nonce, ad, variant = resolve_inputs(key, nonce, key_format, nonce_format, ad, ad_format, variant)
        result = aead_encrypt(decode_input(message, message_format), key, nonce, ad, variant)
    except AsconError as e:
        raise click.ClickException(str(e))

    click.echo(f"ciphertext: {bytes_to_hex(result.ciphertext)}")
    click.echo(f"tag:        {bytes_to_hex(result.tag)}")


@cli.command()
@click.argument("ciphertext_hex")
@click.option("--tag", "-t", "tag_hex", required=True, help="Authentication tag as hex.")
@click.option("--output", "-o", type=click.Choice(["text", "hex"]), default="text", show_default=True)
@cipher_options
def decrypt(ciphertext_hex: str, tag_hex: str, output: str, key, nonce, key_format, nonce_format, ad, ad_format, variant):
    """Verify and decrypt CIPHERTEXT_HEX. Nothing is printed unless the tag is valid."""
    try:
        key, nonce, ad, variant = resolve_inputs(key, nonce, key_format, nonce_format, ad, ad_format, variant)
        result = aead_decrypt(hex_to_bytes(ciphertext_hex), hex_to_bytes(tag_hex), key, nonce, ad, variant)
    except AsconError as e:
        raise click.ClickException(f"{e} ({e.kind})")

    if output == "hex":
        click.echo(bytes_to_hex(result.plaintext))
    else:
        click.echo(bytes_to_text(result.plaintext))


@cli.command()
@click.argument("message")
@click.option(
    "--format", "-f", "message_format",
    type=click.Choice(FORMATS),
    default=None,
    help="Encoding of MESSAGE.  [default: text to encrypt, hex to decrypt]",
)
@click.option("--mode", type=click.Choice(["encrypt", "decrypt"]), default="encrypt", show_default=True)
@click.option("--tag", "-t", "tag_hex", default=None, help="Tag as hex, required with --mode decrypt.")
@click.option("--phase", "-p", "phases", multiple=True, type=click.Choice([p.value for p in Phase]))
@click.option("--delay", type=float, default=0.05, show_default=True, help="Seconds between frames.")
@click.option("--live/--no-live", default=True, show_default=True, help="Replay frame by frame or print a table.")
@cipher_options
def trace(message, message_format, mode, tag_hex, phases, delay, live, key, nonce, key_format, nonce_format, ad, ad_format, variant):
    """Trace every state transition of one run and replay it in the terminal.

    The replay shows the full state, including the key and keystream.
    """
    if message_format is None:
        message_format = "hex" if mode == "decrypt" else "text"
    if mode == "decrypt" and tag_hex is None:
        raise click.UsageError("--tag is required with --mode decrypt")

    try:
        key, nonce, ad, variant = resolve_inputs(key, nonce, key_format, nonce_format, ad, ad_format, variant)
        data = decode_input(message, message_format)
        if mode == "encrypt":
            traced = with_trace(aead_encrypt, data, key, nonce, ad, variant)
        else:
            traced = with_trace(aead_decrypt, data, hex_to_bytes(tag_hex), key, nonce, ad, variant)
    except AsconError as e:
        raise click.ClickException(f"{e} ({e.kind})")

    # Malformed input is reported without a replay.
    if isinstance(traced.error, InvalidInput):
        raise click.ClickException(f"{traced.error} ({traced.error.kind})")

    snapshots = traced.trace
    if phases:
        snapshots = tuple(s for s in snapshots if s.phase.value in phases)

    console = Console()
    if live:
        ui_loop(snapshots, delay=delay, variant=variant, console=console)
    else:
        console.print(trace_table(snapshots, variant))
    console.print(f"{len(snapshots)} snapshots")

    if traced.error is not None:
        raise click.ClickException(f"{traced.error} ({traced.error.kind})")


@cli.command("permute")
@click.argument("words", nargs=-1)
@click.option("--rounds", "-r", type=click.IntRange(1, MAX_ROUNDS), default=MAX_ROUNDS, show_default=True)
@click.option("--show-trace", is_flag=True, help="Print every round sub-step.")
def permute_cmd(words, rounds: int, show_trace: bool):
    """Run the permutation on up to five hex WORDS (missing words are zero)."""
    if len(words) > 5:
        raise click.BadParameter("at most 5 words", param_hint="WORDS")
    try:
        values = [int.from_bytes(hex_to_bytes(w.removeprefix("0x").zfill(16)), "big") for w in words]
        state = AsconState(values + [0] * (5 - len(values)))
    except (AsconError, ValueError) as e:
        raise click.ClickException(str(e))

    if show_trace:
        Console().print(trace_table(with_trace(permute, state, rounds).trace))
    else:
        permute(state, rounds)
    for idx, hex_word in enumerate(state.hex_words()):
        click.echo(f"S{idx}: {hex_word}")


@cli.command()
def keygen():
    """Print a random key and nonce as hex."""
    click.echo(f"key:   {os.urandom(16).hex()}")
    click.echo(f"nonce: {os.urandom(16).hex()}")


@cli.command()
@click.option("--host", default="127.0.0.1", envvar="ASCON_LENS_HOST", help="Host to bind the server to")
@click.option("--port", default=8000, envvar="ASCON_LENS_PORT", help="Port to bind the server to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str, port: int, reload: bool):
    """Start the JSON API consumed by the web visualizer."""
    import uvicorn

    click.echo(f"Starting Ascon API server on http://{host}:{port}")
    click.echo("Available endpoints:")
    click.echo("  - POST /api/encrypt    - Encrypt and authenticate")
    click.echo("  - POST /api/decrypt    - Verify and decrypt")
    click.echo("  - POST /api/trace      - Encrypt or decrypt with a full state trace")
    click.echo("  - GET  /api/demo       - Trace of a fixed demo message")
    click.echo("  - GET  /api/parameters - Permutation constants and variants")
    click.echo("\nPress Ctrl+C to stop the server")

    if reload:
        uvicorn.run("ascon_api.api:app", host=host, port=port, reload=True)
    else:
        from ascon_api.api import app
        uvicorn.run(app, host=host, port=port, reload=False)


if __name__ == "__main__":
    cli()
