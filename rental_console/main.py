import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import auth, database, rules, schemas
from .errors import (
    DeleteFailed,
    NotFoundError,
    RentalConsoleError,
    StoreError,
    ValidationError,
    WorkflowStepFailed,
)
from .images import VehicleImageStore
from .services import Console
from .store import SqlRecordStore, make_store

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rental Console",
    description="API for vehicle rental administration",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

security = HTTPBearer()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    # tests install their own console before the app starts
    if getattr(app.state, "console", None) is None:
        store = make_store()
        if isinstance(store, SqlRecordStore):
            await database.create_tables()
        app.state.console = Console(store)
    if getattr(app.state, "images", None) is None:
        app.state.images = VehicleImageStore()


def get_console(request: Request) -> Console:
    return request.app.state.console


def get_images(request: Request) -> VehicleImageStore:
    return request.app.state.images


def http_error(e: RentalConsoleError) -> HTTPException:
    """Map a console error to the HTTP status the browser console expects."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, DeleteFailed):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": e.message,
                "collection": e.collection,
                "recordId": e.record_id,
                "deleted": [list(pair) for pair in e.deleted],
            }
        )
    if isinstance(e, WorkflowStepFailed):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": e.message,
                "workflow": e.workflow,
                "step": e.step,
                "stepName": e.step_name,
                "completed": e.completed,
                "compensated": e.compensated,
                "compensationErrors": [list(pair) for pair in e.compensation_errors],
            }
        )
    if isinstance(e, StoreError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.user_message())
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


# Authentication

async def get_current_employee(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    payload = auth.verify_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def require_section(section: str):
    """Dependency allowing only roles that may open ``section``."""

    async def check(employee: dict = Depends(get_current_employee)) -> dict:
        if not auth.can_access(employee["role"], section):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{employee['role']}' cannot access {section}"
            )
        return employee

    return check


@app.post("/login", response_model=schemas.Token)
async def login(login_data: schemas.EmployeeLogin, console: Console = Depends(get_console)):
    try:
        employee = await console.employees.authenticate(login_data.email, login_data.password)
        if employee is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password"
            )
        access_token = auth.create_access_token(
            data={"sub": employee.id, "role": employee.role, "email": employee.email}
        )
        logger.info(f"Employee {employee.id} logged in as {employee.role}")
        return {"access_token": access_token, "token_type": "bearer"}
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error logging in: {str(e)}")


@app.get("/employees/me", response_model=schemas.Employee)
async def read_employee_me(
        employee: dict = Depends(get_current_employee),
        console: Console = Depends(get_console)
):
    try:
        return await console.employees.get(employee["sub"])
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error retrieving employee: {str(e)}")


@app.post("/employees", response_model=schemas.Employee, status_code=status.HTTP_201_CREATED)
async def create_employee(
        employee_data: schemas.EmployeeCreate,
        employee: dict = Depends(get_current_employee),
        console: Console = Depends(get_console)
):
    try:
        if employee["role"] != "manager":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only managers can create employees"
            )
        return await console.employees.create(employee_data)
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating employee: {str(e)}")


# Entity CRUD

def crud_router(path: str, section: str, service_name: str, entity: str, read_schema, create_schema,
                update_schema, status_filter: bool = False, employee_field: Optional[str] = None):
    """List/get/create/update/delete routes for one console entity.

    ``employee_field`` is filled with the signed-in employee when the request
    leaves it empty.
    """
    router = APIRouter(prefix=path, tags=[section])
    allowed = require_section(section)

    if status_filter:
        @router.get("", response_model=List[read_schema])
        async def read_all(
                status: Optional[str] = None,
                employee: dict = Depends(allowed),
                console: Console = Depends(get_console)
        ):
            try:
                service = getattr(console, service_name)
                if status:
                    return await service.list(status=status)
                return await service.list()
            except HTTPException:
                raise
            except RentalConsoleError as e:
                raise http_error(e)
            except Exception as e:
                raise HTTPException(status_code=500, detail=f"Error retrieving {entity}s: {str(e)}")
    else:
        @router.get("", response_model=List[read_schema])
        async def read_all(
                employee: dict = Depends(allowed),
                console: Console = Depends(get_console)
        ):
            try:
                return await getattr(console, service_name).list()
            except HTTPException:
                raise
            except RentalConsoleError as e:
                raise http_error(e)
            except Exception as e:
                raise HTTPException(status_code=500, detail=f"Error retrieving {entity}s: {str(e)}")

    @router.get("/{record_id}", response_model=read_schema)
    async def read_one(
            record_id: str,
            employee: dict = Depends(allowed),
            console: Console = Depends(get_console)
    ):
        try:
            return await getattr(console, service_name).get(record_id)
        except HTTPException:
            raise
        except RentalConsoleError as e:
            raise http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error retrieving {entity}: {str(e)}")

    @router.post("", response_model=read_schema, status_code=status.HTTP_201_CREATED)
    async def create(
            data: create_schema,
            employee: dict = Depends(allowed),
            console: Console = Depends(get_console)
    ):
        try:
            if employee_field and getattr(data, employee_field) is None:
                data = data.model_copy(update={employee_field: employee["sub"]})
            return await getattr(console, service_name).create(data)
        except HTTPException:
            raise
        except RentalConsoleError as e:
            raise http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error creating {entity}: {str(e)}")

    @router.put("/{record_id}", response_model=read_schema)
    async def update(
            record_id: str,
            data: update_schema,
            employee: dict = Depends(allowed),
            console: Console = Depends(get_console)
    ):
        try:
            return await getattr(console, service_name).update(record_id, data)
        except HTTPException:
            raise
        except RentalConsoleError as e:
            raise http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error updating {entity}: {str(e)}")

    @router.delete("/{record_id}")
    async def delete(
            record_id: str,
            employee: dict = Depends(allowed),
            console: Console = Depends(get_console)
    ):
        try:
            deleted = await getattr(console, service_name).delete(record_id)
            return {
                "message": f"{entity.capitalize()} deleted successfully",
                "deleted": [list(pair) for pair in deleted or []],
            }
        except HTTPException:
            raise
        except RentalConsoleError as e:
            raise http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Error deleting {entity}: {str(e)}")

    return router


# Workflows

@app.post("/reservations/book", response_model=schemas.BookingResult, status_code=status.HTTP_201_CREATED)
async def book_reservation(
        booking: schemas.BookingRequest,
        employee: dict = Depends(require_section("reservations")),
        console: Console = Depends(get_console)
):
    try:
        return await console.booking.book(booking, employee_id=employee["sub"])
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating reservation: {str(e)}")


@app.post("/rentals/{rental_id}/check-in", response_model=schemas.CheckInResult)
async def check_in_rental(
        rental_id: str,
        check_in: schemas.CheckInRequest,
        employee: dict = Depends(require_section("rentals")),
        console: Console = Depends(get_console)
):
    try:
        return await console.check_in.check_in(rental_id, check_in.return_mileage, employee_id=employee["sub"])
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error checking in rental: {str(e)}")


@app.post("/vehicles/{vehicle_id}/image", response_model=schemas.Vehicle)
async def upload_vehicle_image(
        vehicle_id: str,
        image: UploadFile = File(...),
        employee: dict = Depends(require_section("vehicles")),
        console: Console = Depends(get_console),
        images: VehicleImageStore = Depends(get_images)
):
    try:
        if not image.content_type or not image.content_type.startswith('image/'):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="File must be an image"
            )

        vehicle = await console.vehicles.fetch(vehicle_id)
        image_url = await images.upload(image.file, image.filename or "image")
        updated = await console.vehicles.update(vehicle_id, {"image_url": image_url})
        if vehicle.image_url and vehicle.image_url != image_url:
            await images.delete(vehicle.image_url)
        return updated
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error uploading vehicle image: {str(e)}")


# Registered ahead of the vehicles router so the photo goes with the record
@app.delete("/vehicles/{vehicle_id}")
async def delete_vehicle(
        vehicle_id: str,
        employee: dict = Depends(require_section("vehicles")),
        console: Console = Depends(get_console),
        images: VehicleImageStore = Depends(get_images)
):
    try:
        vehicle = await console.vehicles.fetch(vehicle_id)
        await console.vehicles.delete(vehicle_id)
        if vehicle.image_url:
            await images.delete(vehicle.image_url)
        return {
            "message": "Vehicle deleted successfully",
            "deleted": [["vehicles", vehicle_id]],
        }
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error deleting vehicle: {str(e)}")


@app.get("/dashboard/summary", response_model=schemas.DashboardSummary)
async def dashboard_summary(
        employee: dict = Depends(require_section("dashboard")),
        console: Console = Depends(get_console)
):
    try:
        return await console.dashboard.summary()
    except HTTPException:
        raise
    except RentalConsoleError as e:
        raise http_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading dashboard: {str(e)}")


app.include_router(crud_router(
    "/customers", "customers", "customers", "customer",
    schemas.Customer, schemas.CustomerCreate, schemas.CustomerUpdate
))
app.include_router(crud_router(
    "/vehicle-categories", "vehicles", "categories", "vehicle category",
    schemas.VehicleCategory, schemas.VehicleCategoryCreate, schemas.VehicleCategoryUpdate
))
app.include_router(crud_router(
    "/vehicles", "vehicles", "vehicles", "vehicle",
    schemas.Vehicle, schemas.VehicleCreate, schemas.VehicleUpdate,
    status_filter=True
))
app.include_router(crud_router(
    "/reservations", "reservations", "reservations", "reservation",
    schemas.Reservation, schemas.ReservationCreate, schemas.ReservationUpdate,
    status_filter=True, employee_field="employee_id"
))
app.include_router(crud_router(
    "/rentals", "rentals", "rentals", "rental",
    schemas.Rental, schemas.RentalCreate, schemas.RentalUpdate,
    status_filter=True, employee_field="checkout_employee_id"
))
app.include_router(crud_router(
    "/invoices", "invoices", "invoices", "invoice",
    schemas.Invoice, schemas.InvoiceCreate, schemas.InvoiceUpdate,
    status_filter=True
))
app.include_router(crud_router(
    "/payments", "payments", "payments", "payment",
    schemas.Payment, schemas.PaymentCreate, schemas.PaymentUpdate,
    status_filter=True, employee_field="processed_by"
))
app.include_router(crud_router(
    "/maintenance", "maintenance", "maintenance", "maintenance record",
    schemas.MaintenanceRecord, schemas.MaintenanceCreate, schemas.MaintenanceUpdate,
    status_filter=True, employee_field="technician_id"
))


@app.get("/health")
async def health_check(request: Request):
    health_info = {
        "status": "healthy",
        "service": "rental-console",
        "timestamp": rules.utcnow().isoformat()
    }

    console = getattr(request.app.state, "console", None)
    if console is None:
        health_info["store"] = {"status": "not initialized"}
        health_info["status"] = "unhealthy"
        return health_info

    try:
        await console.store.get_all("vehicle_categories")
        health_info["store"] = {"status": "connected", "backend": type(console.store).__name__}
    except RentalConsoleError as e:
        health_info["store"] = {"status": "error", "error": str(e)}
        health_info["status"] = "unhealthy"

    images = getattr(request.app.state, "images", None)
    health_info["images"] = {"status": "configured" if images is not None and images.configured else "placeholder"}
    return health_info
