"""HTML view shell for a shared note link."""

from pathlib import Path

import jinja2
from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse

from app.utils.ids import is_valid_id

router = APIRouter()

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(Path(__file__).resolve().parent.parent / "templates"),
    autoescape=jinja2.select_autoescape(["html"]),
)


def render_note_page(note_id: str) -> str:
    """Render the decrypt shell. The page never embeds note content; the
    browser fetches ciphertext itself and reads the key from the URL
    fragment, which is never sent to the server."""
    return _env.get_template("note.html").render(note_id=note_id, data_url=f"/api/note/{note_id}/data")


@router.get("/note/{note_id}", response_class=HTMLResponse)
async def view_note(note_id: str):
    if not is_valid_id(note_id):
        raise HTTPException(status_code=404, detail="Note not found")
    return HTMLResponse(render_note_page(note_id))
