import logging
from typing import Optional

from fastapi import FastAPI, Depends, Header, Request, Form, File, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, FileResponse
from fastapi.staticfiles import StaticFiles

import auth
import complaints
import database
from config import ALLOWED_ORIGINS, DATABASE_URL, DATABASE_NAME, PORT, STATIC_DIR, UPLOAD_DIR, setup_logging
from errors import ComplaintDeskError, StorageError
from schemas import RegisterRequest, LoginRequest, StatusUpdateRequest

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Citizen Complaint Desk API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


# Error mapping

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(ComplaintDeskError)
def handle_app_error(request: Request, exc: ComplaintDeskError):
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path} storage failure: {exc.message}")
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = " -> ".join(str(part) for part in error.get("loc", ["unknown"]) if part != "body")
        messages.append(f"{field}: {error.get('msg', 'invalid value')}")
    return error_response(400, "; ".join(messages) or "Invalid request")


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, str(exc))


# Auth helpers

def get_current_identity(authorization: Optional[str] = Header(default=None)) -> dict:
    return auth.verify_token(auth.bearer_token(authorization))


# Pages

@app.get("/")
def dashboard_page():
    return FileResponse(str(STATIC_DIR / "index.html"))


@app.get("/login")
def login_page():
    return FileResponse(str(STATIC_DIR / "login.html"))


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Connected"
            response["connection_status"] = "Connected"
            response["collections"] = database.db.list_collection_names()[:10]
    except Exception as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


@app.on_event("startup")
def on_startup():
    if database.db is None:
        logger.warning("No database configured; API calls will fail with storage errors")
        return
    try:
        database.ensure_indexes()
    except StorageError as e:
        logger.error(f"Could not create indexes: {e.message}")


# Authentication

@app.post("/api/auth/register")
def register_user(payload: RegisterRequest):
    return auth.register(payload.name, payload.email, payload.password)


@app.post("/api/auth/login")
def login_user(payload: LoginRequest):
    token = auth.login(payload.email, payload.password)
    return {"success": True, "token": token}


# Complaints

@app.post("/api/complaints", status_code=201)
def create_complaint(
    request: Request,
    fullName: Optional[str] = Form(None),
    contactNumber: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    routeNumber: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    complaintType: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    timestamp: Optional[str] = Form(None),
    mapPin: Optional[str] = Form(None),
    mapCoordinates: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
):
    fields = {
        "fullName": fullName,
        "contactNumber": contactNumber,
        "email": email,
        "routeNumber": routeNumber,
        "location": location,
        "complaintType": complaintType,
        "description": description,
        "priority": priority,
        "timestamp": timestamp,
        "mapPin": mapPin,
        "mapCoordinates": mapCoordinates,
    }
    upload = None
    if image is not None and image.filename:
        upload = (image.filename, image.file.read())
    complaint = complaints.submit(fields, upload, base_url=str(request.base_url))
    return {"success": True, "complaint": complaint}


@app.get("/api/complaints")
def list_complaints():
    return {"success": True, "complaints": complaints.list_complaints()}


@app.put("/api/complaints/{complaint_id}/status")
def update_complaint_status(complaint_id: str, payload: StatusUpdateRequest, identity: dict = Depends(get_current_identity)):
    complaint = complaints.update_status(complaint_id, payload.status, identity)
    return {"success": True, "complaint": complaint}


@app.delete("/api/complaints/{complaint_id}")
def delete_complaint(complaint_id: str, identity: dict = Depends(get_current_identity)):
    complaints.delete(complaint_id, identity)
    return {"success": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
