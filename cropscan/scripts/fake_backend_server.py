"""
Fake backend for exercising the HTTP adapters without cloud credentials.

Simulates on port 9100:
  - object storage   PUT   /storage/<path>
  - document store   GET/PUT/PATCH /documents/<collection>/<id>
  - Gemini           POST  /gemini/<model>:generateContent

Usage:
    python -m cropscan.scripts.fake_backend_server
    STORAGE_ADAPTER=http DOCUMENT_ADAPTER=http GEMINI_API_KEY=fake \
      GEMINI_BASE_URL=http://127.0.0.1:9100/gemini uvicorn cropscan.services.api:app
"""

import time
import uvicorn
from fastapi import FastAPI, Request, Response

app = FastAPI(title="fake-backend-server")

_blobs: dict[str, int] = {}
_docs: dict[str, dict] = {}

_REPLY = (
    "Late Blight\n"
    "Severity: 3\n"
    "Description: Water-soaked grey-green patches on leaves that turn brown and spread "
    "quickly in cool, wet weather. White mould appears on the underside.\n"
    "Actions:\n"
    "1. Remove and burn infected plants immediately\n"
    "2. Spray mancozeb fungicide on the rest of the field\n"
    "3. Monitor neighbouring plots every two days\n"
    "Scientific name: Phytophthora infestans\n"
    "Type: fungal"
)


@app.put("/storage/{path:path}")
async def put_blob(path: str, request: Request):
    body = await request.body()
    _blobs[path] = len(body)
    print(f"[storage] PUT {path} ({len(body)} bytes)")
    return {"url": f"http://127.0.0.1:9100/storage/{path}"}


@app.get("/documents/{collection}/{doc_id}")
async def get_doc(collection: str, doc_id: str):
    doc = _docs.get(f"{collection}/{doc_id}")
    if doc is None:
        return Response(status_code=404)
    return doc


@app.put("/documents/{collection}/{doc_id}")
async def put_doc(collection: str, doc_id: str, request: Request):
    _docs[f"{collection}/{doc_id}"] = await request.json()
    print(f"[documents] PUT {collection}/{doc_id}")
    return {"ok": True}


@app.patch("/documents/{collection}/{doc_id}")
async def patch_doc(collection: str, doc_id: str, request: Request):
    key = f"{collection}/{doc_id}"
    if key not in _docs:
        return Response(status_code=404)
    _docs[key].update(await request.json())
    print(f"[documents] PATCH {key}")
    return {"ok": True}


@app.post("/gemini/{model_call}")
async def generate(model_call: str, request: Request):
    body = await request.json()
    prompt = body["contents"][0]["parts"][0]["text"]
    print(f"[gemini] {model_call} prompt={len(prompt)} chars: thinking for 0.5s ...")
    time.sleep(0.5)
    return {"candidates": [{"content": {"parts": [{"text": _REPLY}]}, "finishReason": "STOP"}]}


if __name__ == "__main__":
    print("Fake backend starting on http://localhost:9100")
    uvicorn.run(app, host="0.0.0.0", port=9100)
