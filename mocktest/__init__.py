"""Mock Test Learning Platform: course/mock-test catalog API and quiz session engine."""
