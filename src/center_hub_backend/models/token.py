'''

'''
from pydantic import BaseModel
from datetime import datetime

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenPayload(BaseModel):
    sub: str # 'sub' is standard JWT claim for subject (the user's id)
    exp: datetime
