import os
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from src.config import settings

router = APIRouter()

@router.get("/qr/{filename}")
def get_qr_code(filename: str):
    """Serve a rendered ticket QR code"""
    
    if os.path.basename(filename) != filename or not filename.endswith(".png"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="QR code not found")
    
    file_path = os.path.join(settings.QR_CODE_DIR, filename)
    if not os.path.isfile(file_path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="QR code not found")
    
    return FileResponse(file_path, media_type="image/png", filename=filename)
