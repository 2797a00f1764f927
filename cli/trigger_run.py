import os
import argparse
import json

import requests
from dotenv import load_dotenv

# Load environment variables from a .env file for local testing
load_dotenv()

# The HTTP API endpoint of the deployed forwarder
API_ENDPOINT = os.environ.get("FORWARD_LOGS_API")


def create_schedule_payload(schedule: str = "manual-cli") -> dict:
    """
    Builds the body the forwarder recognises as a scheduled run.
    """
    return {"schedule": schedule, "state": "active"}


def trigger_run(endpoint: str, schedule: str = "manual-cli") -> dict | None:
    """
    Asks the deployed forwarder to process new logs now and returns its JSON result.
    """
    if not endpoint:
        print("❌ ERROR: FORWARD_LOGS_API environment variable not set. Please create a .env file.")
        return None

    print(f"--- Triggering log run at {endpoint} ---")
    try:
        response = requests.post(endpoint, json=create_schedule_payload(schedule), timeout=60)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        print(f"\n❌ Failed to trigger log run.")
        print(f"Error: {e}")
        return None

    result = response.json()
    print("\n✅ Success! Log run finished.")
    print(json.dumps(result, indent=2))
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trigger the Auth0 to Logentries forwarder on demand.")
    parser.add_argument("--endpoint", default=API_ENDPOINT, help="Forwarder URL (defaults to FORWARD_LOGS_API).")
    parser.add_argument("--schedule", default="manual-cli", help="Schedule id sent with the request.")
    args = parser.parse_args()

    trigger_run(args.endpoint, args.schedule)
