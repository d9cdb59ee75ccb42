"""Example script printing the console log of a job line by line."""

import os

from jenkwatch.consumer import LogStreamConsumer
from jenkwatch.log_session import JobLogSession


DISABLE_SSL = os.environ.get("DISABLE_SSL", "") == "true"
JENKINS_USER = os.environ.get("JENKINS_USER")
JENKINS_KEY = os.environ.get("JENKINS_KEY")
JOB_URL = os.environ.get("JOB_URL")


def main():
    """Demonstrate basic use of JobLogSession."""
    with JobLogSession(JENKINS_USER, JENKINS_KEY, JOB_URL, DISABLE_SSL) as session:
        session.check()
        for line in LogStreamConsumer(session):
            print(line.decode("utf-8", errors="backslashreplace"), end="")


if __name__ == "__main__":
    main()
