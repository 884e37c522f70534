import random
import uuid

from locust import HttpUser, TaskSet, between, task

PLATFORMS = ["Desktop", "Tablet", "Mobile"]


class ContactBehavior(TaskSet):

    @task(3)
    def submit_contact(self):
        # Unique sender so every submission is a new row
        sender = uuid.uuid4().hex[:8]
        payload = {
            "name": f"Load {sender}",
            "email": f"{sender}@example.com",
            "message": "Load test message, with a comma",
            "platform": random.choice(PLATFORMS),
        }
        self.client.post("/api/contacts", json=payload)

    @task(2)
    def query_platform(self):
        self.client.post(
            "/api/contacts/query", json={"platform": random.choice(PLATFORMS)}
        )

    @task(1)
    def stats(self):
        self.client.get("/api/stats")

    @task(1)
    def health(self):
        self.client.get("/api/health")


class WebsiteUser(HttpUser):
    tasks = [ContactBehavior]
    wait_time = between(1, 2)  # Simulates the time between tasks for each user
