"""
Demo Endpoints

A small set of endpoints covering each branch of the content policy:
- JSON in and out (GetUser, CreateUser)
- URL-encoded form in (Login)
- Binary out (UploadImage, image/png)
- Static page out (RenderPage, text/html)

Every endpoint registers its identity with the handler registry; that
identity is what the exchange record shows in its "handler" field.
"""

from fastapi import APIRouter, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, Response

from exchangelog.api.schemas import CreateUserRequest, LoginResponse, UserResponse
from exchangelog.core.handlers import handlers


router = APIRouter()

# PNG payload returned by /upload
PIXEL_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

# In-memory store; the demo has no persistence
_users = {42: "Ann"}


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Fetch a user",
)
@handlers.register("GetUser")
async def get_user(user_id: int) -> UserResponse:
    """
    Return a user by id.

    Raises:
        HTTPException 404: If the user does not exist
    """
    name = _users.get(user_id)
    if name is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )
    return UserResponse(id=user_id, name=name)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
@handlers.register("CreateUser")
async def create_user(body: CreateUserRequest) -> UserResponse:
    user_id = max(_users, default=0) + 1
    _users[user_id] = body.name
    return UserResponse(id=user_id, name=body.name)


@router.post("/login", response_model=LoginResponse, summary="Log in with a form")
@handlers.register("Login")
async def login(username: str = Form(...), password: str = Form(...)) -> LoginResponse:
    return LoginResponse(username=username, authenticated=bool(password))


@router.post("/upload", summary="Upload raw bytes, get an image back")
@handlers.register("UploadImage")
async def upload_image(request: Request) -> Response:
    """
    Accept any body and answer with a PNG.

    The request body is read here as well, which only works because the
    middleware hands the endpoint a rehydrated stream.
    """
    payload = await request.body()
    return Response(
        content=PIXEL_PNG,
        media_type="image/png",
        headers={"X-Upload-Size": str(len(payload))},
    )


@router.get("/page", response_class=HTMLResponse, summary="Static HTML page")
@handlers.register("RenderPage")
async def render_page() -> str:
    return "<html><body><h1>Exchange Logger</h1></body></html>"
