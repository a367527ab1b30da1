import re

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from src.shortlink.core.config import Settings
from src.shortlink.core.exceptions import StorageUnavailableError
from src.shortlink import main
from src.shortlink.main import VERSION, create_app
from src.shortlink.services.auth_service import SESSION_KEY


class TestLinkEndpoints:
    client: TestClient

    @pytest.fixture(autouse=True)
    def setup(self, logged_in_client: TestClient):
        self.client = logged_in_client

    def test_create_with_shortlink(self):
        response = self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://a.com'})

        assert response.status_code == 201
        assert response.json() == {'success': True, 'shortlink': 'abc', 'message': 'abc'}

    def test_create_generated(self):
        response = self.client.post('/api/new', json={'longlink': 'https://example.com'})

        assert response.status_code == 201
        assert re.fullmatch(r'[A-Za-z0-9]{8}', response.json()['shortlink'])

    def test_create_conflict(self):
        self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://a.com'})
        response = self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://b.com'})

        assert response.status_code == 409
        assert response.json() == {'detail': 'Short URL is already in use!'}

        redirect = self.client.get('/abc', follow_redirects=False)
        assert redirect.headers['location'] == 'https://a.com'

    def test_create_invalid(self):
        response = self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'nope'})
        assert response.status_code == 400

        response = self.client.post('/api/new', json={'shortlink': 'api', 'longlink': 'https://a.com'})
        assert response.status_code == 400

    def test_list_links(self):
        self.client.post('/api/new', json={'shortlink': 'one', 'longlink': 'https://1.com'})
        self.client.post('/api/new', json={'shortlink': 'two', 'longlink': 'https://2.com'})
        self.client.get('/two', follow_redirects=False)

        response = self.client.get('/api/all')

        assert response.status_code == 200
        body = response.json()
        assert [(link['shortlink'], link['longlink'], link['hits']) for link in body] == [
            ('one', 'https://1.com', 0),
            ('two', 'https://2.com', 1),
        ]

    def test_redirect_counts_hits(self):
        self.client.post('/api/new', json={'longlink': 'https://example.com'})
        shortlink = self.client.get('/api/all').json()[0]['shortlink']

        response = self.client.get(f'/{shortlink}', follow_redirects=False)

        assert response.status_code == 308
        assert response.headers['location'] == 'https://example.com'
        assert self.client.get('/api/all').json()[0]['hits'] == 1

    def test_redirect_not_found(self):
        response = self.client.get('/missing', follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {'detail': 'Not found!'}

    def test_delete(self):
        self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://a.com'})

        response = self.client.delete('/api/del/abc')
        assert response.status_code == 200
        assert response.json()['message'] == 'Deleted abc'

        assert self.client.delete('/api/del/abc').status_code == 404
        assert self.client.get('/abc', follow_redirects=False).status_code == 404

    def test_edit(self):
        self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://a.com'})
        self.client.get('/abc', follow_redirects=False)

        response = self.client.post('/api/edit/abc', json={'shortlink': 'xyz', 'longlink': 'https://x.com'})

        assert response.status_code == 200
        assert response.json()['shortlink'] == 'xyz'
        links = self.client.get('/api/all').json()
        assert [(link['shortlink'], link['longlink'], link['hits']) for link in links] == [
            ('xyz', 'https://x.com', 1),
        ]

    def test_edit_not_found(self):
        response = self.client.post('/api/edit/missing', json={'longlink': 'https://x.com'})
        assert response.status_code == 404

    def test_edit_conflict(self):
        self.client.post('/api/new', json={'shortlink': 'abc', 'longlink': 'https://a.com'})
        self.client.post('/api/new', json={'shortlink': 'def', 'longlink': 'https://d.com'})

        response = self.client.post('/api/edit/abc', json={'shortlink': 'def', 'longlink': 'https://x.com'})

        assert response.status_code == 409


class TestAuthEndpoints:
    @pytest.fixture
    def settings(self, db_path) -> Settings:
        return Settings(_env_file=None, db_url=str(db_path), password='hunter2', public_mode=False)

    def test_requires_login(self, client: TestClient):
        assert client.post('/api/new', json={'longlink': 'https://a.com'}).status_code == 401
        assert client.get('/api/all').json() == {'detail': 'Not logged in!'}
        assert client.delete('/api/del/abc').status_code == 401
        assert client.post('/api/edit/abc', json={'longlink': 'https://a.com'}).status_code == 401

    def test_wrong_password(self, client: TestClient):
        response = client.post('/api/login', json={'password': 'wrong'})

        assert response.status_code == 401
        assert response.json() == {'detail': 'Wrong password!'}
        assert client.get('/api/all').status_code == 401

    def test_login_and_logout(self, client: TestClient):
        response = client.post('/api/login', json={'password': 'hunter2'})
        assert response.status_code == 200
        assert response.json() == {'success': True, 'message': 'Correct password!'}
        assert client.get('/api/all').status_code == 200

        assert client.delete('/api/logout').status_code == 200
        assert client.get('/api/all').status_code == 401
        assert client.delete('/api/logout').status_code == 401

    def test_restart_invalidates_sessions(self, client: TestClient, make_client, settings: Settings):
        client.post('/api/login', json={'password': 'hunter2'})
        assert client.get('/api/all').status_code == 200
        cookie = client.cookies.get(SESSION_KEY)
        assert cookie

        restarted = make_client(settings)
        response = restarted.get('/api/all', headers={'cookie': f'{SESSION_KEY}={cookie}'})

        assert response.status_code == 401


class TestPublicMode:
    @pytest.fixture
    def settings(self, db_path) -> Settings:
        return Settings(_env_file=None, db_url=str(db_path), password='hunter2', public_mode=True)

    def test_anonymous_can_create_but_not_list(self, client: TestClient):
        response = client.post('/api/new', json={'shortlink': 'pub', 'longlink': 'https://p.com'})
        assert response.status_code == 201

        response = client.get('/api/all')
        assert response.status_code == 401
        assert response.json() == {'detail': 'Using public mode.'}

    def test_anonymous_cannot_edit_or_delete(self, client: TestClient):
        client.post('/api/new', json={'shortlink': 'pub', 'longlink': 'https://p.com'})

        assert client.delete('/api/del/pub').status_code == 401
        assert client.post('/api/edit/pub', json={'longlink': 'https://x.com'}).status_code == 401


class TestMetaEndpoints:
    def test_version(self, client: TestClient):
        response = client.get('/api/version')
        assert response.status_code == 200
        assert response.text == VERSION

    def test_siteurl_unset(self, client: TestClient):
        assert client.get('/api/siteurl').text == 'unset'

    def test_siteurl(self, make_client, settings: Settings):
        settings.site_url = 'https://s.example.com'
        assert make_client(settings).get('/api/siteurl').text == 'https://s.example.com'

    def test_temporary_redirect(self, make_client, settings: Settings):
        settings.redirect_method = 'TEMPORARY'
        client = make_client(settings)
        client.post('/api/login', json={'password': ''})
        client.post('/api/new', json={'shortlink': 'tmp', 'longlink': 'https://t.com'})

        response = client.get('/tmp', follow_redirects=False)

        assert response.status_code == 307
        assert response.headers['location'] == 'https://t.com'


class TestStartup:
    def test_unopenable_database_is_fatal(self, tmp_path):
        settings = Settings(_env_file=None, db_url=str(tmp_path / 'nowhere' / 'urls.sqlite'))
        with pytest.raises(StorageUnavailableError):
            create_app(settings)

    def test_run_exits_when_storage_unavailable(self, monkeypatch, caplog, settings: Settings):
        def broken_app(settings):
            raise StorageUnavailableError('Database directory /nowhere does not exist')

        monkeypatch.setattr(main, 'load_settings', lambda: settings)
        monkeypatch.setattr(main, 'create_app', broken_app)

        with pytest.raises(SystemExit) as exit_info:
            main.run()

        assert exit_info.value.code == 1
        assert any(
            record.levelname == 'CRITICAL' and 'Cannot start' in record.getMessage()
            for record in caplog.records
        )

    def test_storage_failure_during_request(self, client: TestClient):
        engine = client.app.state.session_factory.kw['bind']
        with engine.begin() as conn:
            conn.execute(text('DROP TABLE links'))

        response = client.get('/abc', follow_redirects=False)

        assert response.status_code == 503
        assert response.json() == {'detail': 'Storage unavailable'}

    def test_in_memory_database_serves_requests(self, make_client):
        client = make_client(Settings(_env_file=None, db_url=':memory:', password=None))
        client.post('/api/login', json={'password': ''})

        created = client.post('/api/new', json={'shortlink': 'mem', 'longlink': 'https://m.com'})
        redirect = client.get('/mem', follow_redirects=False)

        assert created.status_code == 201
        assert redirect.status_code == 308
        assert redirect.headers['location'] == 'https://m.com'


class TestEmptyLonglink:
    def test_empty_longlink_is_a_bad_request(self, logged_in_client: TestClient):
        response = logged_in_client.post('/api/new', json={'shortlink': 'abc', 'longlink': ''})

        assert response.status_code == 400
        assert response.json()['detail'].startswith('Invalid long URL')
