"""
OCR functionality for turning receipt images and PDFs into text.
"""

import asyncio
import io
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from .utils import IMAGE_EXTS, PDF_EXTS, TEXT_EXTS

ProgressCallback = Callable[[int], None]


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract, PIL_Image, fitz
    import importlib
    pytesseract = importlib.import_module("pytesseract")
    PIL_Image = importlib.import_module("PIL.Image")
    fitz = importlib.import_module("fitz")  # pymupdf


# Initialize on first use
pytesseract = None
PIL_Image = None
fitz = None


def ocr_image(img, lang: str = "eng") -> str:
    """OCR a PIL image to text."""
    if pytesseract is None:
        _lazy_import_ocr_deps()
    # Improve OCR: convert to grayscale
    if img.mode != "L":
        img = img.convert("L")
    return pytesseract.image_to_string(img, lang=lang)


def ocr_image_to_text(img_path: Path, lang: str = "eng") -> str:
    """OCR an image file to text."""
    if PIL_Image is None:
        _lazy_import_ocr_deps()
    with PIL_Image.open(img_path) as img:
        return ocr_image(img, lang=lang)


def pdf_page_count(pdf_path: Path) -> int:
    if fitz is None:
        _lazy_import_ocr_deps()
    with fitz.open(pdf_path.as_posix()) as doc:
        return doc.page_count


def pdf_page_to_text(pdf_path: Path, page_no: int, lang: str = "eng") -> str:
    """
    Text of one PDF page. Pages without a text layer (scans) are rasterized
    and run through Tesseract.
    """
    if fitz is None:
        _lazy_import_ocr_deps()
    with fitz.open(pdf_path.as_posix()) as doc:
        page = doc[page_no]
        text = page.get_text()
        if text.strip():
            return text
        pix = page.get_pixmap(matrix=fitz.Matrix(2, 2), alpha=False)
        img = PIL_Image.open(io.BytesIO(pix.tobytes("png")))
        return ocr_image(img, lang=lang)


class OcrJob:
    """
    Cancellable OCR of one receipt file.

    Progress percentages (0-100) are published to ``progress()``; observing
    them is optional. Await the job for the extracted text.
    """

    def __init__(self, path: Path, lang: str = "eng"):
        self.path = path
        self.lang = lang
        self.percent = 0
        self._updates: asyncio.Queue = asyncio.Queue()
        self._task = asyncio.ensure_future(self._run())
        # End of stream, also sent when the task is cancelled before it starts
        self._task.add_done_callback(lambda _: self._updates.put_nowait(None))

    def _report(self, percent: int):
        self.percent = percent
        self._updates.put_nowait(percent)

    async def _run(self) -> str:
        self._report(0)
        ext = self.path.suffix.lower()
        if ext in IMAGE_EXTS:
            text = await asyncio.to_thread(ocr_image_to_text, self.path, self.lang)
        elif ext in PDF_EXTS:
            pages = await asyncio.to_thread(pdf_page_count, self.path)
            chunks = []
            for page_no in range(pages):
                chunks.append(await asyncio.to_thread(pdf_page_to_text, self.path, page_no, self.lang))
                if page_no + 1 < pages:
                    self._report(int((page_no + 1) * 100 / pages))
            text = "\n".join(chunks)
        elif ext in TEXT_EXTS:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        else:
            raise ValueError(f"Unsupported file type: {self.path}")
        self._report(100)
        return text

    async def progress(self) -> AsyncIterator[int]:
        """Yield progress percentages until the job finishes."""
        while True:
            percent = await self._updates.get()
            if percent is None:
                return
            yield percent

    def cancel(self) -> bool:
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    def __await__(self):
        return self._task.__await__()


async def recognize(path: Path, on_progress: Optional[ProgressCallback] = None,
                    lang: str = "eng") -> str:
    """OCR a receipt file, optionally forwarding progress to ``on_progress``."""
    job = OcrJob(path, lang=lang)
    watcher = None
    if on_progress is not None:
        async def _watch():
            async for percent in job.progress():
                on_progress(percent)
        watcher = asyncio.ensure_future(_watch())
    try:
        return await job
    finally:
        if not job.done():
            job.cancel()
        if watcher is not None:
            await asyncio.gather(watcher, return_exceptions=True)
