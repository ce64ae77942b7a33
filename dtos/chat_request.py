from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

class ChatRequest(BaseModel):
    anon_user_id: Optional[str] = Field(default=None, alias="anonUserId")
    thread_id: Optional[str] = Field(default=None, alias="threadId")
    text: Optional[str] = Field(default=None, description="Message forwarded to the agent")

    model_config = ConfigDict(populate_by_name=True)


class ChatResponse(BaseModel):
    ok: bool = True
    reply: Optional[str] = Field(default=None, description="Agent reply exactly as relayed")
