"""
Graphi - minimal example application.

Usage:
    uvicorn example.app:app --port 8000

    open http://localhost:8000/graphiql?query=%7B%20person(firstname%3A%20%22billy%22)%20%7B%20lastname%20%7D%20%7D
"""

import logging

from fastapi import APIRouter, FastAPI
from pydantic import BaseModel

from graphi import ChannelHub, Graphi

logging.basicConfig(level=logging.INFO)

schema = """
    type Person {
        firstname: String! @constr(min: 2, max: 50)
        lastname: String!
    }

    type Query {
        person(firstname: String!): Person!
    }

    type Mutation {
        createPerson(firstname: String!, lastname: String!): Person!
    }

    type Subscription {
        personCreated(firstname: String): Person!
    }
"""


def get_person(parent, args, context, info):
    return {"firstname": args["firstname"], "lastname": "jean"}


app = FastAPI(title="Graphi example")
graphi = Graphi(app, hub=ChannelHub(), schema=schema, resolvers={"person": get_person})


class PersonIn(BaseModel):
    firstname: str
    lastname: str


people = APIRouter()


@people.api_route("/createPerson", methods=["GRAPHQL"], include_in_schema=False)
async def create_person(person: PersonIn):
    await graphi.publish("personCreated", person.model_dump())
    return person


graphi.include_router(people, prefix="/people")
