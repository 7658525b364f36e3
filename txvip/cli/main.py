import typer
import requests
import os


app = typer.Typer()
BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")
TIMEOUT = float(os.getenv("API_TIMEOUT", 15))


def _get(path: str, **params):
    r = requests.get(f"{BASE}{path}", params=params or None, timeout=TIMEOUT)
    return r.json()


@app.command()
def predict(explain: bool = typer.Option(False, help="print the full rationale")):
    out = _get("/predict")
    if "predict" not in out:
        typer.echo(out)
        raise typer.Exit(1)
    typer.echo(f"{out['next_session']}: {out['predict']} ({out['confidence']})")
    if explain:
        typer.echo(out["rationale"])


@app.command()
def stats():
    typer.echo(_get("/stats"))


@app.command()
def history(limit: int = 20):
    for r in _get("/history", limit=limit).get("history", []):
        typer.echo(f"{r['round_id']}  {'-'.join(map(str, r['dice']))}  {r['total']:>2}  {r['label']}")


@app.command()
def ingest(round_id: int, d1: int, d2: int, d3: int, md5: str = typer.Option(None)):
    r = requests.post(f"{BASE}/ingest", json={"round_id": round_id, "d1": d1, "d2": d2, "d3": d3, "md5": md5},
                      timeout=TIMEOUT)
    typer.echo(r.json())


@app.command()
def poll():
    typer.echo(requests.post(f"{BASE}/poll", timeout=TIMEOUT).json())


@app.command()
def advice():
    typer.echo(_get("/capital-advice"))


if __name__ == "__main__":
    app()
