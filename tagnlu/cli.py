import asyncio
import json
import typer
from pathlib import Path
from typing import Optional
from tagnlu.app import main as app_main

app = typer.Typer(help="tagnlu CLI")


@app.command("nlu:encode")
def nlu_encode(text: str, vocab: Optional[Path] = typer.Option(None, "--vocab", "-v", help="Wordpiece vocabulary file")):
    """Show the wordpiece ids and word alignment for TEXT."""
    from tagnlu.core.config import Config
    from tagnlu.core.nlu.encoder import WordpieceEncoder

    encoder = WordpieceEncoder(vocab or Config.NLU_VOCAB_PATH)
    encoded = encoder.encode(text)
    words = encoded.words
    for i, (token_id, word_index) in enumerate(zip(encoded.ids, encoded.original_indices)):
        typer.echo(f"{i:>3}  {token_id:>6}  {words[word_index]}")


@app.command("nlu:classify")
def nlu_classify(
    text: str,
    model: Optional[Path] = typer.Option(None, "--model", "-m", help="Model file"),
    metadata: Optional[Path] = typer.Option(None, "--metadata", help="Metadata JSON"),
    vocab: Optional[Path] = typer.Option(None, "--vocab", "-v", help="Wordpiece vocabulary file"),
):
    """Classify TEXT and print the result as JSON."""
    from tagnlu.core.config import Config
    from tagnlu.core.nlu.engine import NLUEngine

    config = Config.nlu_config()
    if model:
        config.model_path = str(model)
    if metadata:
        config.metadata_path = str(metadata)
    if vocab:
        config.vocab_path = str(vocab)

    engine = NLUEngine(config, trace_listeners=[lambda level, msg: typer.echo(f"[{level.name}] {msg}", err=True)])
    try:
        result = asyncio.run(engine.classify(text))
    finally:
        engine.close()
    typer.echo(json.dumps(result.dict(), indent=2))
    if result.error is not None:
        raise typer.Exit(code=1)


@app.command("run")
def run_nlu():
    """Run tagnlu in interactive mode."""
    asyncio.run(app_main())


@app.command("server")
def server(
    host: str = typer.Option(None, "--host", "-H", help="Host to bind to"),
    port: int = typer.Option(None, "--port", "-p", help="Port to bind to"),
):
    """Start the HTTP classification API."""
    import uvicorn
    from contextlib import asynccontextmanager
    from tagnlu.core.config import Config
    from tagnlu.server import create_app

    if host:
        Config.SERVER_HOST = host
    if port:
        Config.SERVER_PORT = port

    engine = Config.get_nlu_engine()

    @asynccontextmanager
    async def lifespan(app_instance):
        typer.echo(f"Starting HTTP server on {Config.SERVER_HOST}:{Config.SERVER_PORT}")
        typer.echo("   - POST /api/nlu/classify")
        typer.echo("   - GET  /health")
        yield
        typer.echo("Stopping server...")
        engine.close()

    uvicorn.run(
        create_app(engine=engine, lifespan=lifespan),
        host=Config.SERVER_HOST,
        port=Config.SERVER_PORT,
        log_level="info"
    )


if __name__ == "__main__":
    app()
