from pydantic import BaseModel
from typing import List, Optional, Dict, Any

class MedicineInfo(BaseModel):
    display_name: Optional[str] = None
    purpose: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    side_effects: Optional[str] = None
    contraindications: Optional[str] = None

class MedicineEntity(BaseModel):
    name: str                     # canonical vocabulary key
    info: MedicineInfo
    matched_word: Optional[str] = None   # token that triggered the match
    tier: Optional[str] = None           # 'exact', 'substring' or 'fuzzy'
    distance: Optional[int] = None       # edit distance; None for substring matches

class OCRWordIn(BaseModel):
    text: Optional[str] = ""
    bbox: Optional[Any] = None    # {"x0","y0","x1","y1"} or [x0, y0, x1, y1]; malformed boxes are skipped

class DetectRequest(BaseModel):
    text: Optional[str] = None

class DetectResponse(BaseModel):
    medicines: List[MedicineEntity]

class AnnotateRequest(BaseModel):
    text: Optional[str] = None
    words: Optional[List[OCRWordIn]] = []
    natural_width: Optional[float] = None
    natural_height: Optional[float] = None
    display_width: Optional[float] = None
    display_height: Optional[float] = None

class DisplayBoxOut(BaseModel):
    text: str
    x: float
    y: float
    width: float
    height: float
    is_medicine: bool = False

class AnnotateResponse(BaseModel):
    medicines: List[MedicineEntity]
    highlighted_html: str
    boxes: List[DisplayBoxOut]

def to_entity(result) -> Dict[str, Any]:
    """DetectionResult -> MedicineEntity-shaped dict (info without the repeated key)."""
    data = result.to_dict()
    data["info"] = {k: v for k, v in data["info"].items() if k != "key"}
    return data
