from typing import Optional
from io import BytesIO
import json
import os
import qrcode
from qrcode import constants
from PIL import Image

from src.config import settings
from src.bookings.schemas import QRPayload, QRArtifact
from src.logger_config import logger

class TicketRenderer:
    """Renders booking QR codes to PNG and stores them where the webhook app serves /qr"""
    
    def __init__(
        self,
        qr_code_dir: Optional[str] = None,
        base_url: Optional[str] = None,
        qr_size: Optional[int] = None,
        border: Optional[int] = None
    ):
        self.qr_code_dir = qr_code_dir or settings.QR_CODE_DIR
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.qr_size = qr_size or settings.QR_CODE_SIZE
        self.border = border if border is not None else settings.QR_CODE_MARGIN
    
    @staticmethod
    def encode_payload(payload: QRPayload) -> str:
        """Serialize the payload the way it is embedded in the QR code"""
        return json.dumps(payload.model_dump(mode="json", by_alias=True), separators=(',', ':'))
    
    def render_png(self, payload: QRPayload) -> bytes:
        """Generate the QR code image as PNG bytes"""
        
        qr = qrcode.QRCode(
            version=None,
            error_correction=constants.ERROR_CORRECT_H,
            box_size=10,
            border=self.border,
        )
        qr.add_data(self.encode_payload(payload))
        qr.make(fit=True)
        
        qr_image = qr.make_image(fill_color="black", back_color="white")
        qr_image = qr_image.resize((self.qr_size, self.qr_size), Image.LANCZOS)
        
        buffer = BytesIO()
        qr_image.save(buffer, format="PNG")
        return buffer.getvalue()
    
    def render(self, payload: QRPayload) -> QRArtifact:
        """Render the QR image; saving it for a public URL is best effort"""
        
        image_png = self.render_png(payload)
        
        filename = f"{payload.booking_id}.png"
        file_path = os.path.join(self.qr_code_dir, filename)
        try:
            os.makedirs(self.qr_code_dir, exist_ok=True)
            with open(file_path, "wb") as qr_file:
                qr_file.write(image_png)
        except OSError as e:
            logger.warning(f"QR file save failed for {payload.booking_id}, using image only: {e}")
            return QRArtifact(image_png=image_png)
        
        return QRArtifact(
            image_png=image_png,
            file_path=file_path,
            url=f"{self.base_url}/qr/{filename}"
        )
    
    def remove(self, booking_id: str):
        """Delete a stored QR image, if any"""
        file_path = os.path.join(self.qr_code_dir, f"{booking_id}.png")
        try:
            if os.path.isfile(file_path):
                os.remove(file_path)
                logger.info(f"Removed QR code for rolled back booking {booking_id}")
        except OSError as e:
            logger.warning(f"Could not remove QR code for {booking_id}: {e}")
