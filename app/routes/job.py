# ========================================
# app/routes/job.py - job postings, geo search & applications
# ========================================

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from app.config import DEFAULT_RADIUS_KM
from app.database import get_db
from app.models.application import Application
from app.models.job import Job
from app.schemas.job import JobCreate, JobUpdate, JobApply, JobStats
from app.utils.auth import get_current_user, get_current_admin
from app.utils.email import send_application_email
from app.utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.utils.geo import (
    build_geo_client,
    calculate_distance,
    get_client_ip,
    is_public_ip,
    parse_location_text,
    resolve_location,
)
from app.utils.serialize import serialize_doc, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])

NEAR_RADIUS_KM = 50


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _has_coordinates(job):
    # 0/0 marks "not geolocated" on stored jobs
    return bool(job.get("latitude")) and bool(job.get("longitude"))


def _text_match(value, needle):
    return isinstance(value, str) and (needle or "").lower() in value.lower()


def _sort_by_distance(jobs):
    # Newest first, then nearest first; jobs without a distance go last
    jobs.sort(key=lambda j: j.get("createdAt") or datetime.min, reverse=True)
    jobs.sort(key=lambda j: (j.get("distance") is None, j.get("distance") or 0))
    return jobs


def _ip_location_fields(location):
    return {
        "country": location.country,
        "countryCode": location.countryCode,
        "region": location.region,
        "city": location.city,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "timezone": location.timezone,
        "locationAccuracy": location.accuracy,
        "locationSource": "ip-auto",
        "locationDetectedAt": datetime.utcnow(),
    }


async def _get_job_or_404(db, job_id):
    job = await db.jobs.find_one({"_id": parse_object_id(job_id, "job ID")})
    if not job:
        raise NotFoundError("Job not found")
    return job


def _check_owner(job, current_user, action):
    if job.get("recruiter") != str(current_user["_id"]):
        raise ForbiddenError(f"You can only {action} your own job postings")


async def create_application(db, user, job_id, cover_letter=None, resume_url=None):
    """Record an application and bump the job's counter. Shared with OTP replay."""

    job = await _get_job_or_404(db, job_id)
    user_id = str(user["_id"])

    if await db.applications.find_one({"jobId": str(job["_id"]), "userId": user_id}):
        raise ConflictError("You have already applied to this job")

    application = Application(
        jobId=job["_id"],
        userId=user_id,
        email=user["email"],
        coverLetter=cover_letter,
        resumeUrl=resume_url,
    )
    application_doc = application.to_mongo()
    result = await db.applications.insert_one(application_doc)
    application_doc["_id"] = result.inserted_id

    await db.jobs.update_one({"_id": job["_id"]}, {"$inc": {"applicationCount": 1}})

    if job.get("recruiter"):
        recruiter = await db.users.find_one({"_id": parse_object_id(job["recruiter"], "recruiter ID")})
        if recruiter:
            await send_application_email(recruiter["email"], job, user, cover_letter, resume_url)

    logger.info("User %s applied to job %s", user_id, job["_id"])
    return serialize_doc(application_doc)


# ===========================
# PUBLIC ENDPOINTS
# ===========================

# ✅ 1. GET ALL JOBS (optionally geo-filtered)
@router.get("")
async def get_all_jobs(
    all: bool = Query(False, description="Include hidden jobs"),
    geoMode: bool = Query(False),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius: float = Query(DEFAULT_RADIUS_KM, description="Radius in km"),
    userCountry: Optional[str] = Query(None),
    userCity: Optional[str] = Query(None),
):
    """
    Visible jobs, newest first. With geoMode + lat/lng, only jobs within
    `radius` km (or, for jobs without coordinates, matching the user's
    country/city text) are returned, nearest first.
    """
    db = get_db()

    query = {} if all else {"isVisible": {"$ne": False}}
    jobs = await db.jobs.find(query).sort("createdAt", -1).to_list(length=None)

    geo_filtered = geoMode and lat is not None and lng is not None
    if geo_filtered:
        nearby = []
        for job in jobs:
            if _has_coordinates(job):
                job["distance"] = calculate_distance(lat, lng, job["latitude"], job["longitude"])
                if job["distance"] <= radius:
                    nearby.append(job)
            elif _text_match(job.get("country"), userCountry) or _text_match(job.get("jobLocation"), userCity):
                nearby.append(job)
        jobs = _sort_by_distance(nearby)
        logger.info("Jobs found: %d within %skm", len(jobs), radius)

    return {
        "success": True,
        "count": len(jobs),
        "data": [serialize_doc(job) for job in jobs],
        "geoFiltered": geo_filtered,
    }


# ✅ 2. STATS
@router.get("/stats")
async def get_job_stats():
    db = get_db()
    now = datetime.utcnow()

    jobs = await db.jobs.find({}, {"applicationCount": 1}).to_list(length=None)
    stats = JobStats(
        totalJobs=len(jobs),
        activeJobs=await db.jobs.count_documents({"isVisible": True, "deadline": {"$gte": now}}),
        expiredJobs=await db.jobs.count_documents({"deadline": {"$lt": now}}),
        totalApplications=sum(job.get("applicationCount", 0) for job in jobs),
    )
    return {"success": True, "data": stats.model_dump()}


# ✅ 3. JOBS NEAR A POINT
@router.get("/near")
async def get_jobs_near_location(
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius: float = Query(NEAR_RADIUS_KM),
):
    if lat is None or lng is None:
        raise ValidationError("Latitude and longitude are required")

    db = get_db()
    jobs = await db.jobs.find({"isVisible": {"$ne": False}}).to_list(length=None)

    nearby = []
    for job in jobs:
        if not _has_coordinates(job):
            continue
        job["distance"] = calculate_distance(lat, lng, job["latitude"], job["longitude"])
        if job["distance"] <= radius:
            nearby.append(job)

    nearby.sort(key=lambda j: j.get("createdAt") or datetime.min, reverse=True)
    nearby.sort(key=lambda j: (j["distance"], not j.get("isPinned", False)))

    return {
        "success": True,
        "count": len(nearby),
        "data": [serialize_doc(job) for job in nearby],
        "userLocation": {"lat": lat, "lng": lng, "radius": radius},
    }


# ✅ 4. GET SINGLE JOB (increments views)
@router.get("/{job_id}")
async def get_job(job_id: str):
    db = get_db()

    job = await db.jobs.find_one_and_update(
        {"_id": parse_object_id(job_id, "job ID")},
        {"$inc": {"views": 1}},
        return_document=True,
    )
    if not job:
        raise NotFoundError("Job not found")

    return {"success": True, "data": serialize_doc(job)}


# ===========================
# RECRUITER ENDPOINTS
# ===========================

# ✅ 5. POST A JOB
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(payload: JobCreate, request: Request, current_user: dict = Depends(get_current_user)):
    """Create a posting. New jobs wait for admin approval."""

    if current_user.get("userType") != "recruiter":
        raise ForbiddenError("Only recruiters can post jobs")

    if not payload.company or not payload.title or not payload.deadline:
        raise ValidationError("Please provide all required fields: company, title, and deadline")

    deadline = _naive_utc(payload.deadline)
    if deadline <= datetime.utcnow():
        raise ValidationError("Deadline must be in the future")

    job_data = payload.model_dump(exclude={"latitude", "longitude", "deadline", "recruiter"})
    job_data["deadline"] = deadline

    parsed = parse_location_text(payload.jobLocation)
    if parsed:
        job_data.update({k: v for k, v in parsed.model_dump().items() if v})
        job_data["locationSource"] = "text-parsed"

    ip_address = get_client_ip(request)
    if payload.latitude is not None and payload.longitude is not None:
        job_data.update({
            "latitude": payload.latitude,
            "longitude": payload.longitude,
            "locationSource": "coordinates",
        })
    elif is_public_ip(ip_address):
        # Kept even when the lookup fails so update-locations can retry
        job_data["ipAddress"] = ip_address
        location = await resolve_location(ip_address)
        if location.source != "unknown":
            job_data.update(_ip_location_fields(location))
            logger.info("Location auto-detected for new job: %s, %s", location.city, location.country)

    job = Job(recruiter=str(current_user["_id"]), **job_data)
    job_doc = job.to_mongo()
    db = get_db()
    result = await db.jobs.insert_one(job_doc)
    job_doc["_id"] = result.inserted_id

    logger.info("Job created: %s", job_doc["_id"])
    return {"success": True, "data": serialize_doc(job_doc)}


# ✅ 6. UPDATE JOB
@router.put("/{job_id}")
async def update_job(job_id: str, job_update: JobUpdate, current_user: dict = Depends(get_current_user)):
    db = get_db()
    job = await _get_job_or_404(db, job_id)
    _check_owner(job, current_user, "edit")

    update_data = job_update.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No fields to update")
    if update_data.get("deadline"):
        update_data["deadline"] = _naive_utc(update_data["deadline"])
    update_data["updatedAt"] = datetime.utcnow()

    updated_job = await db.jobs.find_one_and_update(
        {"_id": job["_id"]},
        {"$set": update_data},
        return_document=True,
    )
    return {"success": True, "data": serialize_doc(updated_job)}


# ✅ 7. DELETE JOB (soft: hidden from listings)
@router.delete("/{job_id}")
async def delete_job(job_id: str, current_user: dict = Depends(get_current_user)):
    db = get_db()
    job = await _get_job_or_404(db, job_id)
    _check_owner(job, current_user, "delete")

    await db.jobs.update_one(
        {"_id": job["_id"]},
        {"$set": {"isVisible": False, "updatedAt": datetime.utcnow()}}
    )
    return {"success": True, "message": "Job deleted successfully", "data": {"id": job_id}}


# ===========================
# APPLICANT ENDPOINTS
# ===========================

# ✅ 8. APPLY TO JOB
@router.post("/apply")
async def apply_job(payload: JobApply, current_user: dict = Depends(get_current_user)):
    db = get_db()
    application = await create_application(
        db, current_user, payload.jobId, payload.coverLetter, payload.resumeUrl
    )
    return {"success": True, "message": "Application submitted successfully.", "data": application}


# ===========================
# ADMIN ENDPOINTS
# ===========================

# ✅ 9. APPROVE JOB
@router.post("/{job_id}/accept")
async def accept_job(job_id: str, admin: dict = Depends(get_current_admin)):
    db = get_db()
    now = datetime.utcnow()

    job = await db.jobs.find_one_and_update(
        {"_id": parse_object_id(job_id, "job ID")},
        {"$set": {"status": "approved", "isVisible": True, "approvedAt": now, "updatedAt": now}},
        return_document=True,
    )
    if not job:
        raise NotFoundError("Job not found")

    logger.info("Admin %s approved job %s", admin["_id"], job_id)
    return {"success": True, "data": serialize_doc(job)}


# ✅ 10. REJECT JOB
@router.post("/{job_id}/reject")
async def reject_job(job_id: str, admin: dict = Depends(get_current_admin)):
    db = get_db()

    job = await db.jobs.find_one_and_update(
        {"_id": parse_object_id(job_id, "job ID")},
        {"$set": {"status": "rejected", "updatedAt": datetime.utcnow()}},
        return_document=True,
    )
    if not job:
        raise NotFoundError("Job not found")

    logger.info("Admin %s rejected job %s", admin["_id"], job_id)
    return {"success": True, "data": serialize_doc(job)}


# ✅ 11. TOGGLE PIN
@router.patch("/{job_id}/toggle-pin")
async def toggle_job_pinned(job_id: str, admin: dict = Depends(get_current_admin)):
    db = get_db()
    job = await _get_job_or_404(db, job_id)

    updated_job = await db.jobs.find_one_and_update(
        {"_id": job["_id"]},
        {"$set": {"isPinned": not job.get("isPinned", False), "updatedAt": datetime.utcnow()}},
        return_document=True,
    )
    return {"success": True, "data": serialize_doc(updated_job)}


# ✅ 12. RE-RUN IP GEOLOCATION FOR JOBS WITHOUT COORDINATES
@router.post("/update-locations")
async def update_job_locations(admin: dict = Depends(get_current_admin)):
    """
    Jobs posted before their location could be resolved keep the poster's
    IP. Look each one up again and report how many now have coordinates.
    """
    db = get_db()
    jobs = await db.jobs.find({"ipAddress": {"$exists": True, "$ne": None}}).to_list(length=None)
    jobs = [job for job in jobs if not _has_coordinates(job)]

    updated = failed = 0
    async with build_geo_client() as client:
        for job in jobs:
            location = await resolve_location(job["ipAddress"], client=client)
            if location.source == "unknown":
                failed += 1
                continue

            fields = _ip_location_fields(location)
            fields["updatedAt"] = datetime.utcnow()
            await db.jobs.update_one({"_id": job["_id"]}, {"$set": fields})
            updated += 1

    logger.info("Admin %s re-located jobs: %d updated, %d failed", admin["_id"], updated, failed)
    return {
        "success": True,
        "message": f"Location update complete: {updated} updated, {failed} failed",
        "stats": {"updated": updated, "failed": failed, "total": len(jobs)},
    }
