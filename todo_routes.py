from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from pymongo import ReturnDocument

from helper import parse_object_id, serialize_todo

router = APIRouter(tags=["todos"])


# Todo schemas
class TodoItem(BaseModel):
    name: str
    description: str
    status: bool = False


class TodoUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[bool] = None


def get_db(request: Request):
    """Database of the connection the app was created with"""
    return request.app.state.mongo.db


async def all_todos(db) -> list:
    todos = await db.todos.find({}).to_list(length=None)
    return [serialize_todo(todo) for todo in todos]


@router.get("/todos")
async def get_todos(db=Depends(get_db)):
    return {"todos": await all_todos(db)}


@router.post("/add-todo", status_code=201)
async def add_todo(todo: TodoItem, db=Depends(get_db)):
    now = datetime.now()
    todo_document = {
        **todo.model_dump(),
        "createdAt": now,
        "updatedAt": now,
    }
    result = await db.todos.insert_one(todo_document)
    new_todo = await db.todos.find_one({"_id": result.inserted_id})

    return {
        "message": "Todo added",
        "todo": serialize_todo(new_todo),
        "todos": await all_todos(db),
    }


@router.put("/edit-todo/{todo_id}")
async def edit_todo(todo_id: str, changes: TodoUpdate, db=Depends(get_db)):
    object_id = parse_object_id(todo_id)
    fields = changes.model_dump(exclude_none=True)
    fields["updatedAt"] = datetime.now()

    updated = await db.todos.find_one_and_update(
        {"_id": object_id},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Todo {todo_id} not found")

    return {
        "message": "Todo updated",
        "todo": serialize_todo(updated),
        "todos": await all_todos(db),
    }


@router.delete("/delete-todo/{todo_id}")
async def delete_todo(todo_id: str, db=Depends(get_db)):
    object_id = parse_object_id(todo_id)
    deleted = await db.todos.find_one_and_delete({"_id": object_id})
    if deleted is None:
        raise HTTPException(status_code=404, detail=f"Todo {todo_id} not found")

    return {
        "message": "Todo deleted",
        "todo": serialize_todo(deleted),
        "todos": await all_todos(db),
    }
