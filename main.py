# main.py (FastAPI)
import logging
from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool

import config
from api_schema import (
    AnnotateRequest,
    AnnotateResponse,
    DetectRequest,
    DetectResponse,
    to_entity,
)
from drug_matcher import VOCABULARY, detect_medicines
from ocr_module import process_ocr_result

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("api")

app = FastAPI(title="Medicine OCR API")

@app.on_event("startup")
async def startup():
    if len(VOCABULARY):
        logger.info(f"Medicine vocabulary ready with {len(VOCABULARY)} keys.")
    else:
        logger.warning(f"Medicine vocabulary is empty (file: {config.MEDICINE_DATA_FILE}); detection will find nothing.")

@app.post("/api/ocr/detect", response_model=DetectResponse)
async def detect(request: DetectRequest):
    text = request.text or ""
    logger.info(f"OCR text received ({len(text)} chars)")
    if not text.strip():
        return {"medicines": []}

    try:
        results = await run_in_threadpool(detect_medicines, text)
        return {"medicines": [to_entity(r) for r in results]}
    except Exception as e:
        logger.exception("Detection error")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/ocr/annotate", response_model=AnnotateResponse)
async def annotate(request: AnnotateRequest):
    words = [{"text": w.text, "bbox": w.bbox} for w in request.words or []]
    try:
        result = await run_in_threadpool(
            process_ocr_result,
            request.text,
            words,
            (request.natural_width, request.natural_height),
            (request.display_width, request.display_height),
        )
    except Exception as e:
        logger.exception("Annotation error")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "medicines": [to_entity(r) for r in result["medicines"]],
        "highlighted_html": result["highlighted_html"],
        "boxes": [b.to_dict() for b in result["boxes"]],
    }
