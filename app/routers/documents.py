from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from fastapi.responses import FileResponse
from typing import List, Optional
import asyncio
import logging
import re

from app.models.document import Document, DocumentDetail, Flashcard, UploadResponse
from app.models.user import User, UserProfile
from app.db.session import get_db
from app.core.dependencies import get_metadata_service, get_settings, get_storage
from app.services.ai import extract_text_from_pdf
from app.services.auth import get_current_user
from app.services.file import sanitize_filename

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/documents", response_model=UploadResponse)
async def upload_document(
    title: str = Form(...),
    price: int = Form(...),
    description: Optional[str] = Form(None),
    course_code: Optional[str] = Form(None),
    university: Optional[str] = Form(None),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db=Depends(get_db),
    storage=Depends(get_storage),
    metadata_service=Depends(get_metadata_service),
    config=Depends(get_settings),
):
    if price < 0:
        raise HTTPException(status_code=400, detail="Price must not be negative")
    if not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    filename = file.filename or ""
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF documents are supported")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    # pypdf is synchronous, keep it off the event loop
    text = await asyncio.to_thread(extract_text_from_pdf, content)
    metadata = await metadata_service.analyze(text)

    # Use detected course code if not provided
    final_course_code = course_code or (metadata.course_codes[0] if metadata.course_codes else None)

    await file.seek(0)
    file_path = storage.save(current_user.id, filename, file.file)

    document = Document(
        user_id=current_user.id,
        title=title.strip(),
        description=description or None,
        course_code=final_course_code,
        university=university or None,
        tags=metadata.tags,
        price=price,
        summary=metadata.summary,
        difficulty=metadata.difficulty,
        file_path=file_path,
        original_filename=filename,
    )

    try:
        await db.documents.insert_one(document.model_dump())
    except Exception:
        storage.delete(file_path)
        raise

    if metadata.flashcards:
        await db.flashcards.insert_many([
            Flashcard(document_id=document.id, front=card.front, back=card.back).model_dump()
            for card in metadata.flashcards
        ])

    logger.info(f"User {current_user.id} uploaded document {document.id} ({len(metadata.flashcards)} flashcards)")
    return UploadResponse(documentId=document.id)

@router.get("/documents", response_model=List[Document])
async def get_documents(
    search: Optional[str] = None,
    university: Optional[str] = None,
    course_code: Optional[str] = None,
    difficulty: Optional[int] = None,
    db=Depends(get_db),
):
    query = {}
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"course_code": {"$regex": pattern, "$options": "i"}},
        ]
    if university:
        query["university"] = university
    if course_code:
        query["course_code"] = course_code
    if difficulty is not None:
        query["difficulty"] = difficulty

    documents = await db.documents.find(query).sort("created_at", -1).to_list(100)
    return [Document(**document) for document in documents]

@router.get("/my-documents", response_model=List[Document])
async def get_my_documents(current_user: User = Depends(get_current_user), db=Depends(get_db)):
    documents = await db.documents.find({"user_id": current_user.id}).sort("created_at", -1).to_list(100)
    return [Document(**document) for document in documents]

@router.get("/documents/{document_id}", response_model=DocumentDetail)
async def get_document(document_id: str, db=Depends(get_db)):
    document = await db.documents.find_one({"id": document_id})
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    flashcards = await db.flashcards.find({"document_id": document_id}).to_list(100)
    uploader = await db.users.find_one({"id": document["user_id"]})
    return DocumentDetail(
        **document,
        flashcards=[Flashcard(**card) for card in flashcards],
        uploader=UserProfile(**uploader) if uploader else None,
    )

@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: str,
    current_user: User = Depends(get_current_user),
    db=Depends(get_db),
    storage=Depends(get_storage),
):
    document = await db.documents.find_one({"id": document_id})
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    document = Document(**document)

    if document.user_id != current_user.id:
        purchase = await db.purchases.find_one({"buyer_id": current_user.id, "document_id": document_id})
        if not purchase:
            raise HTTPException(status_code=403, detail="Purchase required to download this document")

    try:
        file_path = storage.resolve(document.file_path)
    except ValueError:
        raise HTTPException(status_code=404, detail="File not found")
    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")

    safe_filename = sanitize_filename(f"{document.title}.pdf")
    response = FileResponse(path=file_path, filename=safe_filename, media_type="application/pdf")
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response
