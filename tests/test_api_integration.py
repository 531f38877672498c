# ========================
# tests/test_api_integration.py
# ========================

import unittest
import requests
import time
import tempfile
import os

HEADER = "Country,Year,Status,Lifeexpectancy,AdultMortality,infantdeaths,under-fivedeaths,GDP,percentageexpenditure,Schooling,Polio,Diphtheria"

class TestAPIIntegration(unittest.TestCase):
    """
    Integration tests for the API server endpoints.
    These tests require the API server to be running on localhost:8000
    """

    BASE_URL = "http://localhost:8000"

    @classmethod
    def setUpClass(cls):
        """Check if API server is available before running tests."""
        try:
            response = requests.get(f"{cls.BASE_URL}/health", timeout=5)
            if response.status_code != 200:
                raise ConnectionError("API server not responding correctly")
        except requests.exceptions.RequestException:
            raise unittest.SkipTest("API server not available at localhost:8000. Start with 'python api_server.py'")

    def test_health_endpoint(self):
        """Test the health check endpoint."""
        response = requests.get(f"{self.BASE_URL}/health")
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data["status"], "healthy")
        self.assertIn("timestamp", data)
        self.assertIn("active_jobs", data)

    def test_root_endpoint(self):
        """Test the root API endpoint."""
        response = requests.get(f"{self.BASE_URL}/")
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertIn("endpoints", data)
        self.assertIn("composite_ranking", data["reports"])
        self.assertIn("overall_average_growth", data["reports"])

    def test_run_sample_pipeline(self):
        """Test generating sample data and running the pipeline via API."""
        response = requests.post(f"{self.BASE_URL}/run-pipeline?num_countries=5")
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(data["status"], "queued")
        self.assertEqual(data["type"], "sample_pipeline")
        self.assertEqual(data["parameters"]["num_countries"], 5)

        job = self._wait_for_job_completion(data["job_id"])
        self.assertEqual(job["status"], "completed")
        self.assertEqual(job["summary"]["exploration"]["num_countries"], 5)
        self.assertTrue(job["summary"]["overall_average_growth"].endswith('%'))

    def test_upload_csv_file(self):
        """Test uploading a CSV file and reading a report back."""
        test_csv_content = "\n".join([
            HEADER,
            "US,2000,Developed,70,100,2,3,40000,15,16,95,96",
            "US,2001,,,101,2,3,41000,15.2,16.1,95,96",
            "US,2002,Developed,74,99,2,3,42000,15.4,16.2,96,96",
        ])

        job_id = self._upload(test_csv_content, "test_data.csv", "?missing_value_policy=interpolate")
        job = self._wait_for_job_completion(job_id)
        self.assertEqual(job["status"], "completed")
        self.assertEqual(job["summary"]["cleaning_report"]["life_expectancy_interpolated"], 1)
        self.assertEqual(job["summary"]["cleaning_report"]["statuses_backfilled"], 1)

        response = requests.get(f"{self.BASE_URL}/reports/{job_id}/global_trend")
        self.assertEqual(response.status_code, 200)
        trend = response.json()["data"]
        self.assertEqual([row["global_avg_life_expectancy"] for row in trend], [70.0, 72.0, 74.0])

        response = requests.get(f"{self.BASE_URL}/reports/{job_id}/yearly_growth")
        self.assertEqual([row["avg_growth"] for row in response.json()["data"]], [None, 2.0, 2.0])

        response = requests.get(f"{self.BASE_URL}/reports/{job_id}/no_such_report")
        self.assertEqual(response.status_code, 404)

    def test_download_cleaned_table(self):
        """Test downloading the cleaned table of a completed job."""
        test_csv_content = "\n".join([
            HEADER,
            "Chile,2000,Developing,77,90,3,3,5000,6,12,95,94",
            "Chile,2000,Developing,77,90,3,3,5000,6,12,95,94",
        ])

        job_id = self._upload(test_csv_content, "dupes.csv")
        self._wait_for_job_completion(job_id)

        response = requests.get(f"{self.BASE_URL}/download/{job_id}?file_type=cleaned_table")
        self.assertEqual(response.status_code, 200)

        lines = response.text.strip().splitlines()
        self.assertIn("under_fivedeaths", lines[0])
        self.assertEqual(len(lines), 2)

        response = requests.get(f"{self.BASE_URL}/download/{job_id}?file_type=nothing")
        self.assertEqual(response.status_code, 404)

    def test_failed_job_on_bad_data(self):
        """Test that a non-numeric value fails the job rather than the server."""
        test_csv_content = "\n".join([
            HEADER,
            "Chile,2000,Developing,seventy,90,3,3,5000,6,12,95,94",
        ])

        job_id = self._upload(test_csv_content, "bad.csv")
        job = self._wait_for_job_completion(job_id)
        self.assertEqual(job["status"], "failed")
        self.assertIn("Lifeexpectancy", job["error"])

    def test_upload_path_stays_in_upload_dir(self):
        """Test that directory parts in the client file name are dropped."""
        test_csv_content = "\n".join([
            HEADER,
            "Chile,2000,Developing,77,90,3,3,5000,6,12,95,94",
        ])

        job_id = self._upload(test_csv_content, "../../escape.csv")
        job = requests.get(f"{self.BASE_URL}/status/{job_id}").json()

        self.assertNotIn("..", job["input_file"])
        self.assertTrue(os.path.basename(job["input_file"]).startswith(job_id))
        self.assertTrue(job["input_file"].endswith(f"{job_id}_escape.csv"))

    def test_jobs_listing(self):
        """Test listing all jobs."""
        response = requests.get(f"{self.BASE_URL}/jobs")
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertIn("jobs", data)
        self.assertIn("total_count", data)
        self.assertIn("filtered_count", data)
        self.assertIsInstance(data["jobs"], list)

    def test_job_filtering(self):
        """Test job listing with filters."""
        response = requests.get(f"{self.BASE_URL}/jobs?status=completed")
        self.assertEqual(response.status_code, 200)

        for job in response.json()["jobs"]:
            self.assertEqual(job["status"], "completed")

    def test_job_status_not_found(self):
        """Test job status for non-existent job."""
        response = requests.get(f"{self.BASE_URL}/status/non-existent-job-id")
        self.assertEqual(response.status_code, 404)

    def test_invalid_upload(self):
        """Test uploading invalid file type."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.txt', delete=False) as f:
            f.write("This is not a CSV file")
            temp_file_path = f.name

        try:
            with open(temp_file_path, 'rb') as file:
                files = {'file': ('test.txt', file, 'text/plain')}
                response = requests.post(f"{self.BASE_URL}/upload", files=files)

            self.assertEqual(response.status_code, 400)
            self.assertIn("Only CSV files are supported", response.json()["detail"])

        finally:
            os.unlink(temp_file_path)

    def test_invalid_parameters(self):
        """Test API endpoints with invalid parameters."""
        response = requests.post(f"{self.BASE_URL}/run-pipeline?num_countries=0")
        self.assertEqual(response.status_code, 422)

        response = requests.post(f"{self.BASE_URL}/run-pipeline?missing_value_policy=guess")
        self.assertEqual(response.status_code, 422)

    def test_job_deletion(self):
        """Test deleting a job via API."""
        response = requests.post(f"{self.BASE_URL}/run-pipeline?num_countries=2")
        self.assertEqual(response.status_code, 200)
        job_id = response.json()["job_id"]

        self._wait_for_job_completion(job_id)

        delete_response = requests.delete(f"{self.BASE_URL}/jobs/{job_id}")
        self.assertEqual(delete_response.status_code, 200)

        status_response = requests.get(f"{self.BASE_URL}/status/{job_id}")
        self.assertEqual(status_response.status_code, 404)

    def _upload(self, content, filename, query=""):
        """Helper method to upload CSV text and return the job id."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False) as f:
            f.write(content)
            temp_file_path = f.name

        try:
            with open(temp_file_path, 'rb') as file:
                files = {'file': (filename, file, 'text/csv')}
                response = requests.post(f"{self.BASE_URL}/upload{query}", files=files)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(os.path.basename(response.json()["filename"]), os.path.basename(filename))
            return response.json()["job_id"]
        finally:
            os.unlink(temp_file_path)

    def _wait_for_job_completion(self, job_id, timeout=30):
        """Helper method to wait for job completion."""
        start_time = time.time()
        while time.time() - start_time < timeout:
            response = requests.get(f"{self.BASE_URL}/status/{job_id}")
            if response.status_code == 200:
                data = response.json()
                if data["status"] in ["completed", "failed"]:
                    return data
            time.sleep(1)

        raise TimeoutError(f"Job {job_id} did not complete within {timeout} seconds")

if __name__ == '__main__':
    unittest.main()
